import os
import zipfile

import pytest

from access_review_deploy.errors import PackagingError
from access_review_deploy.services.packager import ArtifactPackager


@pytest.fixture
def packager(tmp_path, function_source):
    return ArtifactPackager(function_source, tmp_path / "build", tmp_path / "lambda_function.zip")


def test_package_contains_every_file_with_relative_paths(packager):
    artifact = packager.package()

    with zipfile.ZipFile(artifact.path) as zipf:
        assert sorted(zipf.namelist()) == ["index.py", "lib/helpers.py"]
        assert zipf.read("lib/helpers.py") == b"VALUE = 1\n"
    assert artifact.file_count == 2
    assert artifact.size == os.path.getsize(artifact.path)


def test_packaging_twice_is_byte_identical(packager):
    first = packager.package().path.read_bytes()
    second_artifact = packager.package()

    assert second_artifact.path.read_bytes() == first
    assert len(second_artifact.sha256) == 64


def test_stale_build_files_are_discarded(packager):
    packager.build_dir.mkdir()
    (packager.build_dir / "stale.py").write_text("old = True\n")

    artifact = packager.package()

    assert not (packager.build_dir / "stale.py").exists()
    with zipfile.ZipFile(artifact.path) as zipf:
        assert "stale.py" not in zipf.namelist()


def test_removed_source_file_does_not_survive_rebuild(packager, function_source):
    packager.package()
    (function_source / "lib" / "helpers.py").unlink()

    artifact = packager.package()

    with zipfile.ZipFile(artifact.path) as zipf:
        assert zipf.namelist() == ["index.py"]


def test_build_dir_is_left_behind(packager):
    packager.package()

    assert (packager.build_dir / "index.py").exists()


def test_missing_source_is_packaging_error(tmp_path):
    packager = ArtifactPackager(tmp_path / "nope", tmp_path / "build", tmp_path / "out.zip")

    with pytest.raises(PackagingError, match="nope") as exc:
        packager.package()

    assert exc.value.kind == "packaging"
    assert not (tmp_path / "out.zip").exists()
