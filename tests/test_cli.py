"""
Tests for the CLI module.
"""

import json
import pytest
from unittest.mock import patch, MagicMock
from click.testing import CliRunner

from sliceflow import __version__
from sliceflow.cli import main
from sliceflow.core.error_handler import FetchFailure


class TestCLI:
    """
    Tests for the CLI module.
    """

    @pytest.fixture
    def runner(self):
        """
        Click CLI test runner.
        """
        return CliRunner()

    @pytest.fixture
    def store_dir(self, tmp_path):
        """
        Queue directory holding one stored item.
        """
        directory = tmp_path / "queue"
        directory.mkdir()
        record = {
            "id": "job-1",
            "status": "ready_for_review",
            "image_url": "https://ik.imagekit.io/acme/campaigns/spring.png",
            "image_width": 600,
            "image_height": 5400,
        }
        (directory / "job-1.json").write_text(json.dumps(record))
        return str(directory)

    def test_version(self, runner):
        result = runner.invoke(main, ['--version'])

        assert result.exit_code == 0
        assert __version__ in result.output

    @patch('sliceflow.cli.build_controller')
    def test_process_success(self, mock_build, runner, store_dir):
        """
        Test the process command with a successful run.
        """
        controller = MagicMock()
        controller.process.return_value = {"success": True, "jobId": "job-1", "processingTimeMs": 1200}
        mock_build.return_value = controller

        result = runner.invoke(main, ['process', 'job-1', '-s', store_dir])

        assert result.exit_code == 0
        assert json.loads(result.output)["processingTimeMs"] == 1200
        controller.process.assert_called_once_with("job-1")
        controller.dispatcher.shutdown.assert_called_once_with(wait=False)

    @patch('sliceflow.cli.build_controller')
    def test_process_failure_exits_nonzero(self, mock_build, runner, store_dir):
        """
        Test the process command when the job fails.
        """
        controller = MagicMock()
        controller.process.return_value = {
            "success": False, "jobId": "job-1", "error": "Failed to fetch image", "step": "fetching_image"
        }
        mock_build.return_value = controller

        result = runner.invoke(main, ['process', 'job-1', '-s', store_dir])

        assert result.exit_code == 1
        assert '"step": "fetching_image"' in result.output

    @patch('sliceflow.cli.build_controller')
    def test_process_rest_mode(self, mock_build, runner):
        """
        Test that --rest wires the REST stores.
        """
        from sliceflow.storage.job_store import RestJobStore
        from sliceflow.storage.early_result_store import RestEarlyResultStore

        controller = MagicMock()
        controller.process.return_value = {"success": True, "jobId": "job-1", "processingTimeMs": 5}
        mock_build.return_value = controller

        result = runner.invoke(main, ['process', 'job-1', '--rest'])

        assert result.exit_code == 0
        args, kwargs = mock_build.call_args
        assert isinstance(args[0], RestJobStore)
        assert isinstance(kwargs["early_copy_store"], RestEarlyResultStore)
        assert kwargs["early_spelling_store"].columns == ["spelling_errors", "created_at"]

    @patch('sliceflow.cli.build_controller')
    def test_process_rest_mode_without_url(self, mock_build, runner):
        """
        Test that --rest without storage.rest_url exits with a configuration error.
        """
        from sliceflow.core.config import set_config_value
        set_config_value("storage.rest_url", None, save=False)

        result = runner.invoke(main, ['process', 'job-1', '--rest'])

        assert result.exit_code == 1
        assert "storage.rest_url" in result.output
        mock_build.assert_not_called()

    def test_show(self, runner, store_dir):
        result = runner.invoke(main, ['show', 'job-1', '-s', store_dir])

        assert result.exit_code == 0
        assert json.loads(result.output)["image_height"] == 5400

    def test_show_missing(self, runner, store_dir):
        result = runner.invoke(main, ['show', 'job-404', '-s', store_dir])

        assert result.exit_code == 1
        assert "not found" in result.output

    @patch('sliceflow.imaging.image_resolver.ImageResolver')
    def test_dimensions(self, mock_resolver_class, runner):
        mock_resolver_class.return_value.read_dimensions.return_value = (600, 5400)

        result = runner.invoke(main, ['dimensions', 'https://ik.imagekit.io/acme/a.png'])

        assert result.exit_code == 0
        assert result.output.strip() == "600x5400"

    @patch('sliceflow.imaging.image_resolver.ImageResolver')
    def test_dimensions_failure(self, mock_resolver_class, runner):
        mock_resolver_class.return_value.read_dimensions.side_effect = FetchFailure(
            "Could not read image dimensions", step="fetching_image"
        )

        result = runner.invoke(main, ['dimensions', 'https://cdn.example.com/a.gif'])

        assert result.exit_code == 1
        assert "Could not read image dimensions" in result.output
