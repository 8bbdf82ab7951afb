from pathlib import Path

import pytest

from winlaunch.artifacts import BytesArtifact, FileArtifact

pytestmark = [pytest.mark.xdist_group("unit")]


class TestArtifacts:
    async def test_file_artifact_reads_on_each_fetch(self, tmp_path: Path):
        jar = tmp_path / "agent.jar"
        jar.write_bytes(b"v1")
        artifact = FileArtifact(jar)

        assert await artifact.fetch() == b"v1"
        jar.write_bytes(b"v2")
        assert await artifact.fetch() == b"v2"

    async def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            await FileArtifact(tmp_path / "missing.jar").fetch()

    async def test_bytes_artifact(self):
        assert await BytesArtifact(b"PK").fetch() == b"PK"
