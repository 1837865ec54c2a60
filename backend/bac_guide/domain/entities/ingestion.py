"""Domain entities reporting ingestion results per file and per batch."""

from dataclasses import dataclass, field


@dataclass
class IngestionResult:
    """Outcome of ingesting one source document."""

    filename: str
    success: bool
    processed_chunk_count: int = 0
    total_chunk_count: int = 0
    failure_reason: str | None = None
    resource_id: str | None = None

    @classmethod
    def failed(
        cls, filename: str, reason: str, *, total_chunk_count: int = 0
    ) -> "IngestionResult":
        return cls(
            filename=filename,
            success=False,
            total_chunk_count=total_chunk_count,
            failure_reason=reason,
        )


@dataclass
class BatchSummary:
    """Aggregate of a directory ingestion run."""

    total_files: int = 0
    succeeded: int = 0
    failed: int = 0
    total_chunks_persisted: int = 0
    results: list[IngestionResult] = field(default_factory=list)

    def add(self, result: IngestionResult) -> None:
        self.results.append(result)
        self.total_files += 1
        if result.success:
            self.succeeded += 1
        else:
            self.failed += 1
        self.total_chunks_persisted += result.processed_chunk_count

    def as_dict(self) -> dict[str, int]:
        return {
            "total_files": self.total_files,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "total_chunks_persisted": self.total_chunks_persisted,
        }
