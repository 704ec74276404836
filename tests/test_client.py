"""Tests for the upload pipeline (ArtifactClient).

Uses the recording FakeGateway from conftest; no network access.
"""

import os
import sys
import zipfile
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from conftest import (
    TEST_BUCKET,
    TEST_ENDPOINT,
    TEST_REPOSITORY,
    TEST_RUN,
    FakeGateway,
)
from volc_artifact import client as client_module
from volc_artifact.client import (
    VALID_TRANSITIONS,
    ArtifactClient,
    PipelineRun,
    PipelineState,
    UploadOptions,
    UploadResult,
    artifact_operation,
    validate_transition,
)
from volc_artifact.errors import (
    ArchiveError,
    ArtifactError,
    ConfigurationError,
    FilesNotFoundError,
    GatewayError,
    GatewayErrorKind,
    InvalidArtifactName,
    InvalidCompressionLevel,
    InvalidPathError,
    InvalidRootDirectory,
    PathEscapesRoot,
    UnsupportedEnvironmentError,
    UploadError,
)

EXPECTED_KEY = f"artifacts/{TEST_REPOSITORY}/demo-1001-2002.zip"


@pytest.fixture
def client(settings, fake_gateway) -> ArtifactClient:
    return ArtifactClient(settings=settings, gateway=fake_gateway, run=TEST_RUN)


def _archives(settings):
    path = Path(settings.archive_directory)
    return sorted(path.glob("*.zip")) if path.exists() else []


class TestUploadArtifact:
    def test_end_to_end_success(self, client, fake_gateway, work_root):
        result = client.upload_artifact("demo", ["a.txt", "sub/"], work_root)

        assert isinstance(result, UploadResult)
        assert result.size_bytes > 0
        assert result.url == f"https://{TEST_BUCKET}.{TEST_ENDPOINT}/{EXPECTED_KEY}"
        assert result.key == EXPECTED_KEY

        assert len(fake_gateway.calls) == 1
        call = fake_gateway.calls[0]
        assert call.bucket == TEST_BUCKET
        assert call.key.endswith("demo-1001-2002.zip")
        assert call.headers == {"content-length": str(result.size_bytes)}

    def test_uploaded_archive_contents(self, client, fake_gateway, work_root):
        client.upload_artifact("demo", ["a.txt", "sub/"], work_root)

        with zipfile.ZipFile(fake_gateway.calls[0].source_file_path) as zf:
            assert zf.namelist() == ["a.txt", "sub/"]
            assert zf.read("a.txt") == b"hi"

    def test_archive_is_complete_before_upload(self, client, fake_gateway, work_root):
        result = client.upload_artifact("demo", ["a.txt", "nested/b.txt"], work_root)
        assert fake_gateway.calls[0].size_on_disk == result.size_bytes

    def test_archive_is_kept_after_success(self, client, settings, work_root):
        client.upload_artifact("demo", ["a.txt"], work_root)
        assert [p.name for p in _archives(settings)] == ["demo-1001-2002.zip"]

    def test_repeat_upload_reuses_key(self, client, fake_gateway, work_root):
        client.upload_artifact("demo", ["a.txt"], work_root)
        client.upload_artifact("demo", ["a.txt"], work_root)

        keys = [c.key for c in fake_gateway.calls]
        assert keys == [EXPECTED_KEY, EXPECTED_KEY]

    def test_compression_level_option(self, client, fake_gateway, work_root):
        client.upload_artifact("demo", ["a.txt"], work_root, UploadOptions(compression_level=0))

        with zipfile.ZipFile(fake_gateway.calls[0].source_file_path) as zf:
            assert zf.getinfo("a.txt").compress_type == zipfile.ZIP_STORED

    def test_archive_directory_option(self, client, work_root, tmp_path):
        target = tmp_path / "custom" / "out"
        client.upload_artifact("demo", ["a.txt"], work_root, UploadOptions(archive_directory=target))
        assert (target / "demo-1001-2002.zip").exists()

    def test_timestamp_key_without_run_identity(self, settings, fake_gateway, work_root):
        fixed = datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)
        client = ArtifactClient(settings=settings, gateway=fake_gateway, clock=lambda: fixed)

        result = client.upload_artifact("demo", ["a.txt"], work_root)

        assert result.key == f"artifacts/{TEST_REPOSITORY}/demo-20261018T120000Z.zip"

    def test_run_identity_from_settings(self, settings, fake_gateway, work_root):
        configured = settings.model_copy(
            update={"workflow_run_id": "7", "workflow_job_run_id": "8"}
        )
        client = ArtifactClient(settings=configured, gateway=fake_gateway)

        result = client.upload_artifact("demo", ["a.txt"], work_root)

        assert result.key.endswith("demo-7-8.zip")

    def test_vanished_file_still_uploads_the_rest(self, client, fake_gateway, work_root):
        real_resolve = client_module.resolve

        def resolve_then_delete(files, root):
            spec = real_resolve(files, root)
            (work_root / "a.txt").unlink()
            return spec

        with patch.object(client_module, "resolve", side_effect=resolve_then_delete):
            result = client.upload_artifact("demo", ["a.txt", "nested/b.txt"], work_root)

        assert result.size_bytes > 0
        with zipfile.ZipFile(fake_gateway.calls[0].source_file_path) as zf:
            assert zf.namelist() == ["nested/b.txt"]


class TestValidationFailures:
    def test_invalid_name_fails_before_any_side_effect(self, client, fake_gateway, settings, work_root):
        with patch.object(client_module, "resolve") as mock_resolve:
            with pytest.raises(InvalidArtifactName):
                client.upload_artifact("bad/name", ["a.txt"], work_root)

        mock_resolve.assert_not_called()
        assert fake_gateway.calls == []
        assert _archives(settings) == []

    def test_missing_root_directory(self, client, fake_gateway, tmp_path):
        with pytest.raises(InvalidRootDirectory):
            client.upload_artifact("demo", ["a.txt"], tmp_path / "nope")
        assert fake_gateway.calls == []

    def test_path_escape(self, client, fake_gateway, work_root, settings):
        with pytest.raises(PathEscapesRoot):
            client.upload_artifact("demo", ["../outside.txt"], work_root)
        assert fake_gateway.calls == []
        assert _archives(settings) == []

    @pytest.mark.skipif(sys.platform != "linux", reason="needs a filesystem with raw byte names")
    @pytest.mark.parametrize("raw_name", [b"bad\xff.txt", b"a\\b.txt"])
    def test_unarchivable_file_name(self, client, fake_gateway, work_root, settings, raw_name):
        name = os.fsdecode(raw_name)
        (work_root / name).write_text("x")

        with pytest.raises(InvalidPathError):
            client.upload_artifact("demo", [name], work_root)

        assert fake_gateway.calls == []
        assert _archives(settings) == []

    def test_empty_file_list(self, client, fake_gateway, work_root):
        with pytest.raises(FilesNotFoundError):
            client.upload_artifact("demo", [], work_root)
        assert fake_gateway.calls == []

    def test_all_files_missing_reports_them(self, client, work_root):
        with pytest.raises(FilesNotFoundError) as exc_info:
            client.upload_artifact("demo", ["ghost.txt", "phantom.log"], work_root)
        assert exc_info.value.files == ["ghost.txt", "phantom.log"]

    def test_invalid_compression_level(self, client, work_root, settings):
        with pytest.raises(InvalidCompressionLevel):
            client.upload_artifact("demo", ["a.txt"], work_root, UploadOptions(compression_level=11))
        assert _archives(settings) == []

    def test_missing_upload_config(self, fake_gateway, work_root):
        from volc_artifact.core.config import ArtifactSettings

        empty = ArtifactSettings.model_construct()
        client = ArtifactClient(settings=empty, gateway=fake_gateway, run=TEST_RUN)

        with pytest.raises(ConfigurationError, match="BUCKET_NAME"):
            client.upload_artifact("demo", ["a.txt"], work_root)
        assert fake_gateway.calls == []

    def test_legacy_host_is_unsupported(self, settings, fake_gateway, work_root):
        legacy = settings.model_copy(update={"legacy_host": True})
        client = ArtifactClient(settings=legacy, gateway=fake_gateway, run=TEST_RUN)

        with pytest.raises(UnsupportedEnvironmentError):
            client.upload_artifact("demo", ["a.txt"], work_root)
        assert fake_gateway.calls == []


class TestStageFailures:
    def test_gateway_network_failure(self, settings, work_root):
        cause = GatewayError(GatewayErrorKind.NETWORK, "connection reset")
        gateway = FakeGateway(error=cause)
        client = ArtifactClient(settings=settings, gateway=gateway, run=TEST_RUN)

        with pytest.raises(UploadError) as exc_info:
            client.upload_artifact("demo", ["a.txt", "sub/"], work_root)

        err = exc_info.value
        assert err.kind == GatewayErrorKind.NETWORK
        assert err.key == EXPECTED_KEY
        assert err.cause is cause
        assert len(gateway.calls) == 1
        # No cleanup: the archive stays for the caller
        assert [p.name for p in _archives(settings)] == ["demo-1001-2002.zip"]

    @pytest.mark.parametrize(
        "kind",
        [GatewayErrorKind.AUTH, GatewayErrorKind.QUOTA, GatewayErrorKind.SERVER],
    )
    def test_gateway_failure_kinds_are_preserved(self, settings, work_root, kind):
        gateway = FakeGateway(error=GatewayError(kind, "nope"))
        client = ArtifactClient(settings=settings, gateway=gateway, run=TEST_RUN)

        with pytest.raises(UploadError) as exc_info:
            client.upload_artifact("demo", ["a.txt"], work_root)
        assert exc_info.value.kind == kind

    def test_upload_is_not_retried(self, settings, work_root):
        gateway = FakeGateway(error=GatewayError(GatewayErrorKind.SERVER, "boom"))
        client = ArtifactClient(settings=settings, gateway=gateway, run=TEST_RUN)

        with pytest.raises(UploadError):
            client.upload_artifact("demo", ["a.txt"], work_root)
        assert len(gateway.calls) == 1

    def test_archive_failure_skips_upload(self, client, fake_gateway, work_root):
        with patch.object(client_module, "build", side_effect=ArchiveError("disk full")):
            with pytest.raises(ArchiveError, match="disk full"):
                client.upload_artifact("demo", ["a.txt"], work_root)
        assert fake_gateway.calls == []


class TestStateMachine:
    def test_linear_path_is_allowed(self):
        states = [
            PipelineState.IDLE,
            PipelineState.VALIDATING,
            PipelineState.ARCHIVING,
            PipelineState.UPLOADING,
            PipelineState.DONE,
        ]
        for current, target in zip(states, states[1:]):
            validate_transition(current, target)

    @pytest.mark.parametrize("state", list(VALID_TRANSITIONS))
    def test_failed_reachable_from_every_active_state(self, state):
        validate_transition(state, PipelineState.FAILED)

    def test_skipping_a_stage_is_rejected(self):
        with pytest.raises(ValueError, match="Invalid pipeline state transition"):
            validate_transition(PipelineState.VALIDATING, PipelineState.UPLOADING)

    def test_backward_transition_is_rejected(self):
        with pytest.raises(ValueError, match="Invalid pipeline state transition"):
            validate_transition(PipelineState.UPLOADING, PipelineState.ARCHIVING)

    @pytest.mark.parametrize("terminal", [PipelineState.DONE, PipelineState.FAILED])
    def test_terminal_states_have_no_exits(self, terminal):
        with pytest.raises(ValueError, match="terminal state"):
            validate_transition(terminal, PipelineState.VALIDATING)

    def test_run_records_history_and_failure(self):
        run = PipelineRun(artifact_name="demo")
        run.advance(PipelineState.VALIDATING)
        run.fail(FilesNotFoundError())

        assert run.state == PipelineState.FAILED
        assert run.history == [PipelineState.IDLE, PipelineState.VALIDATING, PipelineState.FAILED]
        assert run.failure == "FilesNotFoundError"

    def test_fail_after_done_is_ignored(self):
        run = PipelineRun(artifact_name="demo")
        for state in (
            PipelineState.VALIDATING,
            PipelineState.ARCHIVING,
            PipelineState.UPLOADING,
            PipelineState.DONE,
        ):
            run.advance(state)
        run.fail(RuntimeError("late"))
        assert run.state == PipelineState.DONE

    def test_upload_walks_every_state(self, client, work_root):
        runs: list[PipelineRun] = []
        original_init = PipelineRun.__init__

        def capture(self, *args, **kwargs):
            original_init(self, *args, **kwargs)
            runs.append(self)

        with patch.object(PipelineRun, "__init__", capture):
            client.upload_artifact("demo", ["a.txt"], work_root)

        assert runs[0].history == [
            PipelineState.IDLE,
            PipelineState.VALIDATING,
            PipelineState.ARCHIVING,
            PipelineState.UPLOADING,
            PipelineState.DONE,
        ]


class TestArtifactOperation:
    def test_reraises_artifact_errors_unchanged(self):
        error = FilesNotFoundError(["x"])

        @artifact_operation("Test op")
        def failing():
            raise error

        with pytest.raises(FilesNotFoundError) as exc_info:
            failing()
        assert exc_info.value is error

    def test_reraises_unexpected_errors_unchanged(self):
        @artifact_operation("Test op")
        def failing():
            raise KeyError("surprise")

        with pytest.raises(KeyError):
            failing()

    def test_passes_return_value_through(self):
        @artifact_operation("Test op")
        def ok(x):
            return x * 2

        assert ok(21) == 42
        assert ok.__name__ == "ok"

    def test_all_public_errors_share_a_base(self):
        for exc_type in (UploadError, ArchiveError, FilesNotFoundError, ConfigurationError):
            assert issubclass(exc_type, ArtifactError)


class TestModuleLevelApi:
    def test_upload_artifact_uses_default_client(self, client, work_root, monkeypatch):
        monkeypatch.setattr(client_module, "_default_client", client)

        result = client_module.upload_artifact("demo", ["a.txt"], work_root)

        assert result.key == EXPECTED_KEY

    def test_default_client_configures_logging_from_settings(self, settings, monkeypatch):
        configure = MagicMock()
        monkeypatch.setattr(client_module, "_default_client", None)
        monkeypatch.setattr(client_module, "configure_logging", configure)
        monkeypatch.setattr(
            client_module, "get_settings", lambda: settings.model_copy(update={"debug": True})
        )

        first = client_module.get_client()
        second = client_module.get_client()

        assert first is second
        assert first.settings.debug is True
        configure.assert_called_once_with(debug=True)


class TestUploadResult:
    def test_to_dict(self):
        result = UploadResult(size_bytes=22, url="https://b.example.com/k.zip", key="k.zip")
        assert result.to_dict() == {
            "size": 22,
            "url": "https://b.example.com/k.zip",
            "key": "k.zip",
        }
