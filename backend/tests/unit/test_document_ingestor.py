"""Unit tests for the DocumentIngestor."""

import asyncio

import pytest

from bac_guide.application.interfaces import EmbeddingProvider, KnowledgeStore, TextExtractor
from bac_guide.application.services.document_ingestor import DocumentIngestor
from bac_guide.domain.entities import Resource, ResourceChunk, ResourceType, RetrievedChunk
from bac_guide.domain.exceptions import EmbeddingFailure, ExtractionFailure, KnowledgeStoreError

DIMS = 4


# ── Fakes ──


class FakeExtractor(TextExtractor):
    """Returns canned text per filename."""

    def __init__(self, texts: dict[str, str] | None = None, failures: set[str] | None = None):
        self.texts = texts or {}
        self.failures = failures or set()
        self.calls: list[str] = []

    def supports(self, file_path: str) -> bool:
        return file_path.endswith((".pdf", ".txt"))

    async def extract_text(self, file_path: str) -> str:
        name = file_path.rsplit("/", 1)[-1]
        self.calls.append(name)
        if name in self.failures:
            raise ExtractionFailure(file_path, "corrupt PDF")
        return self.texts.get(name, "")


class FakeEmbedder(EmbeddingProvider):
    """Returns a scripted vector per call; an Exception entry is raised."""

    def __init__(self, script: list | None = None):
        self.script = list(script or [])
        self.calls: list[str] = []

    @property
    def dimensions(self) -> int:
        return DIMS

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        item = self.script.pop(0) if self.script else [0.1] * DIMS
        if isinstance(item, Exception):
            raise item
        return item

    async def embed_query(self, text: str) -> list[float]:
        return [0.1] * DIMS


class FakeStore(KnowledgeStore):
    """In-memory knowledge store."""

    def __init__(self, fail_replace: bool = False):
        self.resources: dict[str, Resource] = {}
        self.chunks: dict[str, list[ResourceChunk]] = {}
        self.fail_replace = fail_replace
        self.replace_calls = 0
        self.delay = 0.0

    async def get_resource_by_filename(self, filename):
        return self.resources.get(filename)

    async def get_or_create_resource(self, resource):
        if resource.filename not in self.resources:
            resource.id = f"res-{len(self.resources) + 1}"
            self.resources[resource.filename] = resource
        return self.resources[resource.filename]

    async def list_resources(self):
        return list(self.resources.values())

    async def list_chunks(self, resource_id):
        return list(self.chunks.get(resource_id, []))

    async def replace_chunks(self, resource_id, chunks):
        self.replace_calls += 1
        if self.fail_replace:
            raise KnowledgeStoreError("replace_chunks", "connection lost")
        if self.delay:
            await asyncio.sleep(self.delay)
        self.chunks[resource_id] = list(chunks)

    async def nearest_neighbors(self, query_embedding, k) -> list[RetrievedChunk]:
        return []

    async def text_search(self, text, k) -> list[RetrievedChunk]:
        return []


class RecordingSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def _sentences(count: int, length: int = 100) -> str:
    return " ".join(chr(ord("a") + i) * (length - 1) + "." for i in range(count))


def _make_ingestor(store, embedder, extractor, sleep=None, **kwargs) -> DocumentIngestor:
    return DocumentIngestor(
        store,
        embedder,
        extractor,
        sleep=sleep or RecordingSleep(),
        **kwargs,
    )


# ── ingest ──


@pytest.mark.asyncio
async def test_ingest_persists_numbered_chunks_with_metadata():
    store, embedder = FakeStore(), FakeEmbedder()
    extractor = FakeExtractor({"guide_2024.pdf": _sentences(12)})
    ingestor = _make_ingestor(store, embedder, extractor)

    result = await ingestor.ingest("/docs/guide_2024.pdf")

    assert result.success
    assert result.processed_chunk_count == 3
    assert result.total_chunk_count == 3
    assert result.resource_id == "res-1"

    resource = store.resources["guide_2024.pdf"]
    assert resource.title == "guide_2024"
    assert resource.type is ResourceType.GUIDE

    chunks = store.chunks["res-1"]
    assert [c.chunk_index for c in chunks] == [0, 1, 2]
    meta = chunks[1].metadata
    assert meta.chunk_index == 1
    assert meta.total_chunks == 3
    assert meta.source_file == "guide_2024.pdf"
    assert meta.text_length == len(chunks[1].content.encode("utf-8"))
    assert meta.processing_date


@pytest.mark.asyncio
async def test_ingest_classifies_by_filename_unless_declared():
    store = FakeStore()
    extractor = FakeExtractor({
        "scores_2024.pdf": _sentences(2),
        "annexe.pdf": _sentences(2),
    })
    ingestor = _make_ingestor(store, FakeEmbedder(), extractor)

    await ingestor.ingest("/docs/scores_2024.pdf")
    await ingestor.ingest("/docs/annexe.pdf", ResourceType.SCORE)

    assert store.resources["scores_2024.pdf"].type is ResourceType.SCORE
    assert store.resources["annexe.pdf"].type is ResourceType.SCORE


@pytest.mark.asyncio
async def test_text_length_counts_utf8_bytes():
    store = FakeStore()
    text = "Les élèves de la filière sciences expérimentales doivent réussir."
    ingestor = _make_ingestor(store, FakeEmbedder(), FakeExtractor({"g.pdf": text}))

    await ingestor.ingest("/docs/g.pdf")

    chunk = store.chunks["res-1"][0]
    assert chunk.metadata.text_length == len(text.encode("utf-8"))
    assert chunk.metadata.text_length > len(text)


@pytest.mark.asyncio
async def test_failed_embeddings_are_skipped_and_renumbered():
    store = FakeStore()
    embedder = FakeEmbedder([
        [0.1] * DIMS,
        EmbeddingFailure("openrouter", 500, "upstream error"),
        [0.2] * DIMS,
    ])
    extractor = FakeExtractor({"guide.pdf": _sentences(12)})
    ingestor = _make_ingestor(store, embedder, extractor)

    result = await ingestor.ingest("/docs/guide.pdf")

    assert result.success
    assert result.processed_chunk_count == 2
    assert result.total_chunk_count == 3
    chunks = store.chunks["res-1"]
    assert [c.chunk_index for c in chunks] == [0, 1]
    assert all(c.metadata.total_chunks == 2 for c in chunks)
    assert chunks[1].content.startswith("i" * 99)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "bad_vector",
    [[], [0.1] * (DIMS + 1), ["a", "b", "c", "d"], [True, False, True, False]],
)
async def test_unusable_vectors_are_skipped(bad_vector):
    store = FakeStore()
    embedder = FakeEmbedder([bad_vector, [0.3] * DIMS])
    extractor = FakeExtractor({"guide.pdf": _sentences(8)})
    ingestor = _make_ingestor(store, embedder, extractor)

    result = await ingestor.ingest("/docs/guide.pdf")

    assert result.processed_chunk_count == 1
    assert store.chunks["res-1"][0].embedding == [0.3] * DIMS


@pytest.mark.asyncio
async def test_extraction_failure_changes_nothing():
    store = FakeStore()
    extractor = FakeExtractor(failures={"broken.pdf"})
    ingestor = _make_ingestor(store, FakeEmbedder(), extractor)

    result = await ingestor.ingest("/docs/broken.pdf")

    assert not result.success
    assert result.failure_reason.startswith("no text extracted")
    assert "corrupt PDF" in result.failure_reason
    assert store.resources == {}


@pytest.mark.asyncio
async def test_empty_text_fails_without_touching_store():
    store, embedder = FakeStore(), FakeEmbedder()
    ingestor = _make_ingestor(store, embedder, FakeExtractor({"scan.pdf": "  \n "}))

    result = await ingestor.ingest("/docs/scan.pdf")

    assert result.failure_reason == "no text extracted"
    assert embedder.calls == []
    assert store.replace_calls == 0


@pytest.mark.asyncio
async def test_text_too_short_for_any_chunk():
    store = FakeStore()
    ingestor = _make_ingestor(store, FakeEmbedder(), FakeExtractor({"tiny.txt": "Oui."}))

    result = await ingestor.ingest("/docs/tiny.txt")

    assert result.failure_reason == "no chunks produced"
    assert store.resources == {}


@pytest.mark.asyncio
async def test_zero_embedded_chunks_keeps_previous_set():
    store = FakeStore()
    extractor = FakeExtractor({"guide.pdf": _sentences(4)})
    await _make_ingestor(store, FakeEmbedder(), extractor).ingest("/docs/guide.pdf")
    previous = store.chunks["res-1"]

    failing = FakeEmbedder([EmbeddingFailure("openrouter", 503, "down")] * 5)
    result = await _make_ingestor(store, failing, extractor).ingest("/docs/guide.pdf")

    assert not result.success
    assert result.failure_reason == "no chunks embedded"
    assert store.chunks["res-1"] == previous
    assert store.replace_calls == 1


@pytest.mark.asyncio
async def test_reingestion_reuses_resource_and_replaces_chunks():
    store = FakeStore()
    extractor = FakeExtractor({"guide.pdf": _sentences(12)})
    ingestor = _make_ingestor(store, FakeEmbedder(), extractor)
    await ingestor.ingest("/docs/guide.pdf")

    extractor.texts["guide.pdf"] = _sentences(4)
    result = await ingestor.ingest("/docs/guide.pdf")

    assert result.resource_id == "res-1"
    assert len(store.resources) == 1
    assert len(store.chunks["res-1"]) == 1


@pytest.mark.asyncio
async def test_storage_failure_is_reported():
    store = FakeStore(fail_replace=True)
    ingestor = _make_ingestor(store, FakeEmbedder(), FakeExtractor({"g.pdf": _sentences(4)}))

    result = await ingestor.ingest("/docs/g.pdf")

    assert not result.success
    assert result.failure_reason.startswith("storage failed")


@pytest.mark.asyncio
async def test_throttle_delays_every_call_and_pauses_every_nth():
    sleep = RecordingSleep()
    extractor = FakeExtractor({"g.pdf": _sentences(12, length=150)})
    ingestor = _make_ingestor(
        FakeStore(),
        FakeEmbedder(),
        extractor,
        sleep=sleep,
        chunk_size=150,
        embedding_delay_seconds=0.1,
        embedding_pause_every=5,
        embedding_pause_seconds=1.0,
    )

    await ingestor.ingest("/docs/g.pdf")

    assert sleep.delays.count(0.1) == 12
    assert sleep.delays.count(1.0) == 2


@pytest.mark.asyncio
async def test_concurrent_ingestions_of_same_file_are_serialized():
    store = FakeStore()
    store.delay = 0.01
    extractor = FakeExtractor({"guide.pdf": _sentences(4)})
    ingestor = _make_ingestor(store, FakeEmbedder(), extractor)

    results = await asyncio.gather(
        ingestor.ingest("/docs/guide.pdf"),
        ingestor.ingest("/docs/guide.pdf"),
    )

    assert all(r.success for r in results)
    assert len(store.resources) == 1
    assert store.replace_calls == 2
    assert len(store.chunks["res-1"]) == 1


# ── ingest_directory ──


@pytest.mark.asyncio
async def test_ingest_directory_processes_sorted_supported_files(tmp_path):
    for name in ["b_guide.pdf", "a_scores.pdf", "notes.xyz", "c_broken.pdf"]:
        (tmp_path / name).write_text("x")
    extractor = FakeExtractor(
        {"a_scores.pdf": _sentences(4), "b_guide.pdf": _sentences(8)},
        failures={"c_broken.pdf"},
    )
    store = FakeStore()
    ingestor = _make_ingestor(store, FakeEmbedder(), extractor)

    summary = await ingestor.ingest_directory(str(tmp_path))

    assert extractor.calls == ["a_scores.pdf", "b_guide.pdf", "c_broken.pdf"]
    assert summary.as_dict() == {
        "total_files": 3,
        "succeeded": 2,
        "failed": 1,
        "total_chunks_persisted": 3,
    }
    assert store.resources["a_scores.pdf"].type is ResourceType.SCORE
    assert store.resources["b_guide.pdf"].type is ResourceType.GUIDE


@pytest.mark.asyncio
async def test_missing_directory_is_created_empty(tmp_path):
    target = tmp_path / "pdfs"
    ingestor = _make_ingestor(FakeStore(), FakeEmbedder(), FakeExtractor())

    summary = await ingestor.ingest_directory(str(target))

    assert target.is_dir()
    assert summary.total_files == 0
    assert summary.results == []


@pytest.mark.asyncio
async def test_null_embeddings_from_provider_fail_files_without_aborting_batch(tmp_path):
    import httpx

    from bac_guide.infrastructure.openrouter import OpenRouterEmbeddingProvider

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": [{"index": 0, "embedding": None}]})

    embedder = OpenRouterEmbeddingProvider(
        api_key="test-key",
        model_dimensions=DIMS,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    for name in ["a_guide.pdf", "b_guide.pdf"]:
        (tmp_path / name).write_text("x")
    extractor = FakeExtractor({"a_guide.pdf": _sentences(4), "b_guide.pdf": _sentences(4)})
    store = FakeStore()
    ingestor = _make_ingestor(store, embedder, extractor)

    summary = await ingestor.ingest_directory(str(tmp_path))

    assert extractor.calls == ["a_guide.pdf", "b_guide.pdf"]
    assert summary.as_dict() == {
        "total_files": 2,
        "succeeded": 0,
        "failed": 2,
        "total_chunks_persisted": 0,
    }
    assert store.replace_calls == 0
