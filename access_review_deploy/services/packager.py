# access_review_deploy/services/packager.py
import hashlib
import logging
import os
import shutil
import zipfile
from pathlib import Path

from access_review_deploy.errors import PackagingError
from access_review_deploy.models.deployment import PackagedArtifact

logger = logging.getLogger(__name__)

STEP = "package function code"

# Fixed entry metadata so identical trees give identical archives
ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)
ZIP_FILE_MODE = 0o644


class ArtifactPackager:
    def __init__(self, source_dir: Path, build_dir: Path, artifact_file: Path):
        self.source_dir = Path(source_dir)
        self.build_dir = Path(build_dir)
        self.artifact_file = Path(artifact_file)

    def package(self) -> PackagedArtifact:
        """
        Stage the function source into a fresh build directory and zip it.

        The build directory is wiped first so files removed from the source
        can never reach a deployment. It is left in place afterwards.
        """
        logger.info("Packaging %s into %s", self.source_dir, self.artifact_file)
        try:
            self._reset_build_dir()
            self._stage_sources()
            file_count = self._write_archive()
            data = self.artifact_file.read_bytes()
        except OSError as e:
            raise PackagingError(f"Failed to package {self.source_dir}: {e}", step=STEP) from e

        artifact = PackagedArtifact(
            path=self.artifact_file,
            size=len(data),
            sha256=hashlib.sha256(data).hexdigest(),
            file_count=file_count,
        )
        logger.info(
            "Packaged %d files (%d bytes, sha256 %s)",
            artifact.file_count, artifact.size, artifact.sha256,
        )
        return artifact

    def _reset_build_dir(self) -> None:
        # a missing build dir is fine on first run
        if self.build_dir.exists():
            shutil.rmtree(self.build_dir)
        os.makedirs(self.build_dir, exist_ok=True)

    def _stage_sources(self) -> None:
        if not self.source_dir.is_dir():
            raise FileNotFoundError(f"Function source directory not found: {self.source_dir}")
        shutil.copytree(self.source_dir, self.build_dir, dirs_exist_ok=True)

    def _write_archive(self) -> int:
        count = 0
        self.artifact_file.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(self.artifact_file, "w", zipfile.ZIP_DEFLATED) as zipf:
            for root, dirs, files in os.walk(self.build_dir):
                dirs.sort()
                for file in sorted(files):
                    file_path = Path(root) / file
                    arcname = file_path.relative_to(self.build_dir).as_posix()
                    info = zipfile.ZipInfo(arcname, date_time=ZIP_EPOCH)
                    info.compress_type = zipfile.ZIP_DEFLATED
                    info.external_attr = ZIP_FILE_MODE << 16
                    zipf.writestr(info, file_path.read_bytes())
                    count += 1

        # Postconditions
        if not zipfile.is_zipfile(self.artifact_file):
            raise OSError(f"Invalid ZIP file structure: {self.artifact_file}")
        return count
