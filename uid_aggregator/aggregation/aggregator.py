"""
Aggregator for folding uploaded files into per-UID profiles.

Every row of every file is assigned to the UID extracted from it. Each UID
gets one profile carrying per-kind buckets of its rows, the latest activity
date seen, and one provenance entry per contributing file.
"""

import logging
from typing import Dict, Iterator, List, Optional, Sequence, Set, Tuple

from uid_aggregator.models.aggregated_user import AggregatedUserData, Row
from uid_aggregator.models.uid_source import UIDSource
from uid_aggregator.models.uploaded_file import UploadedFile
from uid_aggregator.parsers.field_extractor import FieldExtractor
from uid_aggregator.utils.chunking import ProgressCallback, iterate_in_chunks
from uid_aggregator.utils.constants import DEFAULT_CHUNK_SIZE


logger = logging.getLogger(__name__)


class _AggregationRun:
    """
    State for a single aggregation pass.

    A new run is created per call so concurrent calls never share the
    UID map.
    """

    def __init__(self, extractor: FieldExtractor) -> None:
        self.extractor = extractor
        self.profiles: Dict[str, AggregatedUserData] = {}
        self._file: Optional[UploadedFile] = None
        self._seen_in_file: Set[str] = set()
        self._dropped_in_file = 0

    def start_file(self, uploaded: UploadedFile) -> None:
        self.finish_file()
        self._file = uploaded
        self._seen_in_file = set()
        self._dropped_in_file = 0

    def finish_file(self) -> None:
        if self._file is not None and self._dropped_in_file:
            logger.debug(
                "File '%s': skipped %d of %d rows with no UID",
                self._file.name, self._dropped_in_file, self._file.row_count,
            )
        self._file = None

    def consume(self, row: Row) -> None:
        uploaded = self._file
        kind = uploaded.type

        uid = self.extractor.extract_uid(row, kind)
        if uid is None:
            self._dropped_in_file += 1
            return

        profile = self.profiles.get(uid)
        if profile is None:
            # Name is only taken from the row that creates the profile
            profile = AggregatedUserData(
                uid=uid,
                name=self.extractor.extract_name(row, kind),
            )
            self.profiles[uid] = profile

        profile.add_record(kind, row)
        profile.touch(self.extractor.extract_date(row))

        if uid not in self._seen_in_file:
            self._seen_in_file.add(uid)
            profile.add_source(UIDSource(
                file_name=uploaded.name,
                file_type=kind,
                timestamp=uploaded.upload_date,
                source_type=uploaded.source_type,
                source_uid=uploaded.source_uid,
            ))

    def results(self) -> List[AggregatedUserData]:
        self.finish_file()
        return list(self.profiles.values())


class Aggregator:
    """
    Fold a list of uploaded files into aggregated user profiles.

    Files are processed in input order and rows in file order; output
    profiles are in UID first-seen order. The input files are never
    modified, and the same input always yields the same output.

    Example usage:
        aggregator = Aggregator()
        profiles = aggregator.aggregate(files)
    """

    def __init__(
        self,
        extractor: Optional[FieldExtractor] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        """
        Initialize aggregator.

        Args:
            extractor: Field extractor to use. Defaults to FieldExtractor().
            chunk_size: Rows processed between yields in aggregate_async

        Raises:
            ValueError: If chunk_size is not positive
        """
        if chunk_size <= 0:
            raise ValueError(f"Chunk size must be positive, got: {chunk_size}")
        self.extractor = extractor or FieldExtractor()
        self.chunk_size = chunk_size

    def aggregate(self, files: Sequence[UploadedFile]) -> List[AggregatedUserData]:
        """
        Aggregate all rows of all files by UID.

        Args:
            files: Uploaded files, already classified or manually typed

        Returns:
            One profile per distinct UID, in first-seen order
        """
        run = _AggregationRun(self.extractor)
        for uploaded in files:
            run.start_file(uploaded)
            for row in uploaded.data:
                run.consume(row)

        profiles = run.results()
        logger.debug("Aggregated %d files into %d profiles", len(files), len(profiles))
        return profiles

    async def aggregate_async(
        self,
        files: Sequence[UploadedFile],
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[AggregatedUserData]:
        """
        Aggregate like aggregate(), yielding to the event loop between chunks.

        Args:
            files: Uploaded files
            on_progress: Optional callback receiving (rows_processed, total_rows)

        Returns:
            Same result as aggregate(files)
        """
        total = sum(len(uploaded.data) for uploaded in files)

        run = _AggregationRun(self.extractor)
        current = -1
        async for index, uploaded, row in iterate_in_chunks(
            _iter_rows(files), self.chunk_size, total, on_progress
        ):
            if index != current:
                run.start_file(uploaded)
                current = index
            run.consume(row)

        return run.results()


def _iter_rows(files: Sequence[UploadedFile]) -> Iterator[Tuple[int, UploadedFile, Row]]:
    for index, uploaded in enumerate(files):
        for row in uploaded.data:
            yield index, uploaded, row


def aggregate_files(files: Sequence[UploadedFile]) -> List[AggregatedUserData]:
    """Aggregate files with a default Aggregator."""
    return Aggregator().aggregate(files)


async def aggregate_files_async(
    files: Sequence[UploadedFile],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> List[AggregatedUserData]:
    """Aggregate files cooperatively with a default Aggregator."""
    return await Aggregator(chunk_size=chunk_size).aggregate_async(files)
