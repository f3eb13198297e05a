"""Exceptions for the character enrichment pipeline."""


class EnrichmentError(Exception):
    """Base exception for character enrichment errors."""


class NameTooShortError(EnrichmentError):
    """Raised when a character name is too short to enrich meaningfully."""

    def __init__(self, name: str):
        self.name = name
        super().__init__("name too short")


class BackendError(EnrichmentError):
    """Raised when every AI backend tier failed or returned an unusable payload."""


class CharacterNotFoundError(EnrichmentError):
    """Raised when a character is no longer present in its anime."""

    def __init__(self, anime_id: str, character_name: str):
        self.anime_id = anime_id
        self.character_name = character_name
        super().__init__(f"Character '{character_name}' not found in anime {anime_id}")


class AnimeNotFoundError(EnrichmentError):
    """Raised when an anime document does not exist."""

    def __init__(self, anime_id: str):
        self.anime_id = anime_id
        super().__init__(f"Anime {anime_id} not found")


class AdminAccessError(EnrichmentError):
    """Raised when a non-admin principal calls an admin-only operation."""

    def __init__(self, operation: str):
        super().__init__(f"Admin access required for {operation}")


class StoreUnavailableError(EnrichmentError):
    """Raised when the document store cannot be reached.

    This is the only error class allowed to escape a batch run.
    """


class ConcurrentModificationError(EnrichmentError):
    """Raised when an optimistic document write keeps losing to other writers."""

    def __init__(self, anime_id: str):
        self.anime_id = anime_id
        super().__init__(f"Concurrent modification of anime {anime_id}; retries exhausted")
