"""AI enrichment of characters embedded in anime documents."""

from .config import (
    SCHEDULE_PRESETS,
    AIBackendConfig,
    EnrichmentPolicy,
    SchedulePreset,
    get_ai_backend_config,
    get_enrichment_policy,
)
from .exceptions import (
    AdminAccessError,
    AnimeNotFoundError,
    BackendError,
    CharacterNotFoundError,
    ConcurrentModificationError,
    EnrichmentError,
    NameTooShortError,
    StoreUnavailableError,
)
from .locator import count_by_status, is_eligible, select_eligible
from .name_matcher import locate_character, normalize_character_name
from .orchestrator import EnrichmentOrchestrator, EnrichmentOutcome, OutcomeStatus
from .scheduler import BatchReport, BatchScheduler
from .service import (
    CharacterEnrichmentService,
    EnrichmentStatusReport,
    OnDemandResult,
    Principal,
    ResetResult,
)

__all__ = [
    "SCHEDULE_PRESETS",
    "AIBackendConfig",
    "AdminAccessError",
    "AnimeNotFoundError",
    "BackendError",
    "BatchReport",
    "BatchScheduler",
    "CharacterEnrichmentService",
    "CharacterNotFoundError",
    "ConcurrentModificationError",
    "EnrichmentError",
    "EnrichmentOrchestrator",
    "EnrichmentOutcome",
    "EnrichmentPolicy",
    "EnrichmentStatusReport",
    "NameTooShortError",
    "OnDemandResult",
    "OutcomeStatus",
    "Principal",
    "ResetResult",
    "SchedulePreset",
    "StoreUnavailableError",
    "count_by_status",
    "get_ai_backend_config",
    "get_enrichment_policy",
    "is_eligible",
    "locate_character",
    "normalize_character_name",
    "select_eligible",
]
