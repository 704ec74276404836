"""Shared test fixtures for the artifact upload test suite.

Everything runs against tmp_path work roots and an in-memory recording
gateway. No network access, no real credentials.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import pytest

from volc_artifact.core.config import ArtifactSettings
from volc_artifact.errors import GatewayError
from volc_artifact.storage.keys import RunIdentity

TEST_BUCKET = "ci-artifacts"
TEST_REPOSITORY = "octo/widgets"
TEST_ENDPOINT = "tos-cn-beijing.volces.com"
TEST_RUN = RunIdentity(workflow_run_id="1001", job_run_id="2002")


@dataclass
class PutCall:
    bucket: str
    key: str
    source_file_path: str
    headers: dict[str, str]
    # Size on disk at the moment put_object was called
    size_on_disk: int


@dataclass
class FakeGateway:
    """UploadGateway that records calls and optionally fails."""

    error: Optional[GatewayError] = None
    calls: list[PutCall] = field(default_factory=list)

    def put_object(
        self,
        bucket: str,
        key: str,
        source_file_path: str,
        headers: Mapping[str, str],
    ) -> None:
        self.calls.append(PutCall(
            bucket=bucket,
            key=key,
            source_file_path=source_file_path,
            headers=dict(headers),
            size_on_disk=Path(source_file_path).stat().st_size,
        ))
        if self.error is not None:
            raise self.error


@pytest.fixture
def settings(tmp_path) -> ArtifactSettings:
    return ArtifactSettings(
        bucket_name=TEST_BUCKET,
        github_repository=TEST_REPOSITORY,
        public_endpoint=TEST_ENDPOINT,
        access_key="ak-test",
        secret_key="sk-test",
        region="cn-beijing",
        archive_directory=str(tmp_path / "archives"),
        _env_file=None,
    )


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def work_root(tmp_path) -> Path:
    """A root with a.txt ("hi"), an empty sub/ and a nested file."""
    root = tmp_path / "work"
    root.mkdir()
    (root / "a.txt").write_text("hi")
    (root / "sub").mkdir()
    (root / "nested").mkdir()
    (root / "nested" / "b.txt").write_text("bee")
    return root
