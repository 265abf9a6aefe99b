"""Concatenates stored chunks, in index order, into the final artifact."""

import json
from dataclasses import dataclass
from pathlib import Path

from common.constants import ATTACHMENTS_DIRNAME
from common.exceptions import AssemblyError
from common.logging_config import get_logger
from common.checksum import IncrementalChecksumCalculator
from server.chunk_store import ChunkStore
from server.repositories.session_repository import UploadSession
from server.utils import resolve_mime_type, stored_filename_for, utc_now

logger = get_logger(__name__)


@dataclass(frozen=True)
class AssembledArtifact:
    """
    Location and digest of an assembled file.
    """
    path: str
    absolute_path: Path
    size: int
    checksum: str


class Assembler:
    """
    Builds the final artifact for a session whose UploadedSet is complete.

    Output lands at <root>/temp_attachments/<temp_identifier>/<slug>_<unique>.<ext>
    next to a JSON .meta sidecar holding the original filename and mime type.
    """

    def __init__(self, storage_root: Path, chunk_store: ChunkStore):
        self.storage_root = Path(storage_root)
        self.attachments_dir = self.storage_root / ATTACHMENTS_DIRNAME
        self.chunk_store = chunk_store

    def assemble(self, session: UploadSession) -> AssembledArtifact:
        """
        Stream every chunk of the session into one file.

        Args:
            session: Session whose chunks are all recorded as uploaded

        Returns:
            AssembledArtifact describing the written file

        Raises:
            AssemblyError: If a chunk is missing at read time, the result has
                the wrong size, or the artifact cannot be written
        """
        target_dir = self.attachments_dir / session.temp_identifier
        stored_name = stored_filename_for(session.original_filename)
        final_abs = target_dir / stored_name
        relative_path = f"{ATTACHMENTS_DIRNAME}/{session.temp_identifier}/{stored_name}"

        calculator = IncrementalChecksumCalculator()
        written = 0

        logger.info(
            f"Assembling {session.total_chunks} chunks [upload_id={session.upload_id}] -> {relative_path}"
        )

        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            with open(final_abs, 'wb') as outfile:
                for index in range(session.total_chunks):
                    if not self.chunk_store.chunk_exists(session.upload_id, index):
                        raise AssemblyError(
                            f"Chunk {index} missing from storage for upload {session.upload_id}"
                        )
                    for piece in self.chunk_store.read_chunk_streaming(session.upload_id, index):
                        outfile.write(piece)
                        calculator.update(piece)
                        written += len(piece)
        except AssemblyError:
            self._discard(final_abs)
            raise
        except OSError as e:
            self._discard(final_abs)
            raise AssemblyError(f"Failed to assemble upload {session.upload_id}: {e}") from e

        if written != session.declared_size:
            self._discard(final_abs)
            raise AssemblyError(
                f"Assembled size {written} does not match declared size {session.declared_size}"
            )

        self._write_sidecar(final_abs, session)

        logger.info(f"Assembled {written} bytes [upload_id={session.upload_id}]")

        return AssembledArtifact(
            path=relative_path,
            absolute_path=final_abs,
            size=written,
            checksum=calculator.finalize(),
        )

    def _write_sidecar(self, final_abs: Path, session: UploadSession) -> None:
        sidecar = final_abs.with_name(final_abs.name + ".meta")
        try:
            sidecar.write_text(json.dumps({
                "original_filename": session.original_filename,
                "mime_type": resolve_mime_type(session.original_filename, session.mime_type),
                "uploaded_at": utc_now().isoformat(),
            }))
        except OSError as e:
            self._discard(final_abs)
            raise AssemblyError(f"Failed to write metadata for {final_abs.name}: {e}") from e

    @staticmethod
    def _discard(path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove partial artifact {path}: {e}")
