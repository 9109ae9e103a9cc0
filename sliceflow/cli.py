"""
Command-line interface for the Sliceflow package.

This module provides the CLI commands for the Sliceflow package:
- process: Run the campaign processing pipeline for a queue item
- show: Print a stored queue item
- dimensions: Print the true pixel dimensions of a hosted image
"""

import sys
import json

import click

from sliceflow import __version__
from sliceflow.core.error_handler import ConfigurationError, FetchFailure
from sliceflow.core.logging_config import get_logger, configure_logging

# Initialize logging
configure_logging()
logger = get_logger(__name__)


def build_controller(job_store, brand_store, early_copy_store=None, early_spelling_store=None):
    """
    Wire a PipelineController with HTTP collaborators.

    Args:
        job_store: Queue item storage
        brand_store: Brand storage
        early_copy_store: Store for early copy results (in-memory if omitted)
        early_spelling_store: Store for early spelling results (in-memory if omitted)

    Returns:
        PipelineController: Ready-to-run controller
    """
    from sliceflow.imaging.image_resolver import ImageResolver
    from sliceflow.imaging.image_views import ImageViewBuilder
    from sliceflow.pipeline.copy_orchestrator import CopyOrchestrator
    from sliceflow.pipeline.early_dispatcher import EarlyTaskDispatcher
    from sliceflow.pipeline.link_annotator import LinkAnnotator
    from sliceflow.pipeline.pipeline_controller import PipelineController
    from sliceflow.pipeline.qa_orchestrator import QAOrchestrator
    from sliceflow.pipeline.slicer import Slicer
    from sliceflow.services.http_services import (
        HttpServiceClient,
        HttpSegmentationService,
        HttpSliceAnnotationService,
        HttpLinkResolutionService,
        HttpCopyGenerationService,
        HttpSpellingCheckService,
        HttpCopySearchService,
    )
    from sliceflow.storage.early_result_store import InMemoryEarlyResultStore

    client = HttpServiceClient()
    view_builder = ImageViewBuilder()
    copy_store = early_copy_store or InMemoryEarlyResultStore()
    spelling_store = early_spelling_store or InMemoryEarlyResultStore()
    copy_service = HttpCopyGenerationService(client)
    spelling_service = HttpSpellingCheckService(client)

    return PipelineController(
        job_store=job_store,
        brand_store=brand_store,
        image_resolver=ImageResolver(),
        dispatcher=EarlyTaskDispatcher(
            copy_service, spelling_service, copy_store, spelling_store, view_builder=view_builder
        ),
        slicer=Slicer(HttpSegmentationService(client), view_builder=view_builder),
        link_annotator=LinkAnnotator(
            HttpSliceAnnotationService(client),
            HttpLinkResolutionService(client),
            brand_store=brand_store,
            view_builder=view_builder
        ),
        copy_orchestrator=CopyOrchestrator(
            copy_service,
            copy_store,
            search_service=HttpCopySearchService(client),
            view_builder=view_builder
        ),
        qa_orchestrator=QAOrchestrator(spelling_service, spelling_store, view_builder=view_builder),
        view_builder=view_builder,
    )


@click.group()
@click.version_option(version=__version__)
def main():
    """
    Sliceflow - Campaign processing pipeline.

    Turns an email design image into sliced, linked blocks with subject
    line and preview text candidates and spelling QA.
    """
    pass


@main.command()
@click.argument('job_id', type=str)
@click.option('--store-dir', '-s', type=click.Path(file_okay=False, dir_okay=True), default='queue',
              show_default=True, help='Directory holding <job_id>.json queue items')
@click.option('--brands-file', '-b', type=click.Path(file_okay=True, dir_okay=False), default='brands.yaml',
              show_default=True, help='YAML file with brand definitions')
@click.option('--rest', is_flag=True, default=False,
              help='Use the REST queue and early result tables from storage.rest_url instead of files')
def process(job_id: str, store_dir: str, brands_file: str, rest: bool = False):
    """
    Process a queue item.

    JOB_ID: Queue item id

    Examples:
      sliceflow process 3f2c9a -s queue -b brands.yaml
      sliceflow process 3f2c9a --rest
    """
    from sliceflow.storage.brand_store import YamlBrandStore

    brand_store = YamlBrandStore(brands_file)

    if rest:
        from sliceflow.core.config import get_config_value
        from sliceflow.core.constants import (
            DEFAULT_QUEUE_TABLE,
            DEFAULT_EARLY_COPY_TABLE,
            DEFAULT_EARLY_SPELLING_TABLE,
        )
        from sliceflow.storage.early_result_store import RestEarlyResultStore
        from sliceflow.storage.job_store import RestJobStore
        from sliceflow.storage.rest_client import RestClient

        try:
            client = RestClient(get_config_value("storage.rest_url"))
        except ConfigurationError as e:
            click.echo(f"Error: {e.message} (set {', '.join(e.missing_keys)})", err=True)
            sys.exit(1)
        controller = build_controller(
            RestJobStore(client, get_config_value("storage.queue_table", DEFAULT_QUEUE_TABLE)),
            brand_store,
            early_copy_store=RestEarlyResultStore(
                client,
                get_config_value("storage.early_copy_table", DEFAULT_EARLY_COPY_TABLE),
                columns=["subject_lines", "preview_texts", "spelling_errors", "created_at"]
            ),
            early_spelling_store=RestEarlyResultStore(
                client,
                get_config_value("storage.early_spelling_table", DEFAULT_EARLY_SPELLING_TABLE),
                columns=["spelling_errors", "created_at"]
            ),
        )
    else:
        from sliceflow.storage.job_store import JsonFileJobStore
        controller = build_controller(JsonFileJobStore(store_dir), brand_store)

    try:
        result = controller.process(job_id)
    finally:
        controller.dispatcher.shutdown(wait=False)

    click.echo(json.dumps(result, indent=2))
    if not result.get("success"):
        sys.exit(1)


@main.command()
@click.argument('job_id', type=str)
@click.option('--store-dir', '-s', type=click.Path(file_okay=False, dir_okay=True), default='queue',
              show_default=True, help='Directory holding <job_id>.json queue items')
def show(job_id: str, store_dir: str):
    """
    Print a stored queue item as JSON.

    JOB_ID: Queue item id
    """
    from sliceflow.storage.job_store import JsonFileJobStore

    item = JsonFileJobStore(store_dir).get(job_id)
    if item is None:
        click.echo(f"Error: queue item {job_id} not found", err=True)
        sys.exit(1)

    click.echo(json.dumps(item.to_dict(), indent=2))


@main.command()
@click.argument('image_url', type=str)
def dimensions(image_url: str):
    """
    Print the true pixel dimensions of a hosted image.

    IMAGE_URL: Image reference
    """
    from sliceflow.imaging.image_resolver import ImageResolver

    try:
        width, height = ImageResolver().read_dimensions(image_url)
    except FetchFailure as e:
        logger.error(f"Error reading dimensions: {e}")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"{width}x{height}")


if __name__ == '__main__':
    main()
