import pytest

from docent.memory import InMemoryVectorStore
from helpers import KeywordEmbeddings


@pytest.fixture
def embeddings() -> KeywordEmbeddings:
    return KeywordEmbeddings()


@pytest.fixture
def store(embeddings) -> InMemoryVectorStore:
    """In-memory store seeded with chunks from several sources."""
    chunks = [
        ("c1", "Sailing a small boat across the ocean", {"source": "goodreads", "userId": "42", "fileName": "Sea Stories", "bookAuthor": "Ann Sailor", "userRating": 5, "dateRead": "2024-03-01T00:00:00.000Z", "shelves": "favorites|adventure"}),
        ("c2", "A book about garden design", {"source": "goodreads", "userId": "42", "fileName": "Green Thumb", "bookAuthor": "Bo Planter", "userRating": 3, "dateRead": "2023-06-15T00:00:00.000Z", "shelves": "home"}),
        ("c3", "Tax invoice for 2023 with receipt", {"source": "paperless", "fileName": "invoice.pdf", "documentId": 7, "correspondent": "ACME", "tags": "Tax|Receipts", "documentDate": "2023-12-31T00:00:00.000Z"}),
        ("c4", "Python notes about sailing", {"source": "uploaded", "userId": "42", "fileName": "notes.md", "fileType": "md", "filePath": "/docs/notes.md", "totalChunks": 2}),
        ("c5", "Weekly meeting in the calendar", {"source": "google-calendar", "fileName": "Standup", "eventStartTime": "2024-05-02T09:00:00.000Z", "eventLocation": "Room 4", "eventAttendees": "kim@example.com"}),
        ("c6", "Synced ocean research paper", {"source": "synced", "userId": "7", "fileName": "ocean.pdf", "fileType": "pdf", "filePath": "/docs/ocean.pdf", "totalChunks": 40}),
    ]
    memory_store = InMemoryVectorStore()
    memory_store.add(
        ids=[c[0] for c in chunks],
        embeddings=embeddings.embed_documents([c[1] for c in chunks]),
        documents=[c[1] for c in chunks],
        metadatas=[c[2] for c in chunks],
    )
    embeddings.calls.clear()
    return memory_store
