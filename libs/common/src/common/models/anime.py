"""Pydantic models for anime documents and their embedded character records."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EnrichmentStatus(str, Enum):
    """Tracking status of a character's AI enrichment.

    An unset status (``None`` on the record) means the character has never
    been picked up by the pipeline.
    """

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


# =============================================================================
# ENRICHED CONTENT SUB-MODELS
# =============================================================================


class KeyRelationship(BaseModel):
    """Short-form relationship to another character."""

    related_character_name: str = Field(..., description="Name of the related character")
    relationship_description: str = Field(..., description="How the two are connected")
    relation_type: str = Field(..., description="Relationship category (ally, rival, ...)")


class DetailedAbility(BaseModel):
    """Named ability with a description."""

    ability_name: str = Field(..., description="Ability name")
    ability_description: str = Field(..., description="What the ability does")
    power_level: str | None = Field(None, description="Relative power level")


class SpecialTechnique(BaseModel):
    name: str
    description: str
    power_level: str | None = None
    limitations: str | None = None


class PsychologicalProfile(BaseModel):
    personality_type: str | None = None
    core_fears: list[str] = Field(default_factory=list)
    core_desires: list[str] = Field(default_factory=list)
    emotional_triggers: list[str] = Field(default_factory=list)
    coping_mechanisms: list[str] = Field(default_factory=list)
    mental_health_aspects: str | None = None
    trauma_history: str | None = None
    defense_mechanisms: list[str] = Field(default_factory=list)


class CombatProfile(BaseModel):
    fighting_style: str | None = None
    preferred_weapons: list[str] = Field(default_factory=list)
    combat_strengths: list[str] = Field(default_factory=list)
    combat_weaknesses: list[str] = Field(default_factory=list)
    battle_tactics: str | None = None
    power_scaling: str | None = None
    special_techniques: list[SpecialTechnique] = Field(default_factory=list)


class SocialDynamics(BaseModel):
    social_class: str | None = None
    cultural_background: str | None = None
    social_influence: str | None = None
    leadership_style: str | None = None
    communication_style: str | None = None
    social_connections: list[str] = Field(default_factory=list)
    reputation: str | None = None
    public_image: str | None = None


class CharacterArchetype(BaseModel):
    primary_archetype: str | None = None
    secondary_archetypes: list[str] = Field(default_factory=list)
    character_tropes: list[str] = Field(default_factory=list)
    subverted_tropes: list[str] = Field(default_factory=list)
    character_role: str | None = None
    narrative_function: str | None = None


class CharacterImpact(BaseModel):
    influence_on_story: str | None = None
    influence_on_other_characters: str | None = None
    cultural_impact: str | None = None
    fanbase_reception: str | None = None
    merchandise_popularity: str | None = None
    cosplay_popularity: str | None = None
    meme_status: str | None = None
    legacy_in_anime: str | None = None


class AdvancedRelationship(BaseModel):
    character_name: str
    relationship_type: str
    emotional_dynamics: str
    key_moments: list[str] = Field(default_factory=list)
    relationship_evolution: str | None = None
    impact_on_story: str | None = None


class DevelopmentPhase(BaseModel):
    phase: str
    description: str
    character_state: str
    key_events: list[str] = Field(default_factory=list)
    character_growth: str | None = None
    challenges: str | None = None
    relationships: str | None = None


class EnrichedContent(BaseModel):
    """AI-generated content merged into a character on successful enrichment.

    Unknown keys are ignored so that both backend payloads and full cached
    character dumps can be validated into this model.
    """

    model_config = ConfigDict(extra="ignore")

    # =====================================================================
    # SCALAR FIELDS
    # =====================================================================
    personality_analysis: str | None = Field(None, description="Personality analysis")
    backstory_details: str | None = Field(None, description="Backstory")
    character_development: str | None = Field(None, description="Growth over the series")
    symbolism: str | None = Field(None, description="Symbolic meaning of the character")
    fan_reception: str | None = Field(None, description="How fans received the character")
    cultural_significance: str | None = Field(None, description="Wider cultural impact")

    # =====================================================================
    # ARRAY FIELDS
    # =====================================================================
    key_relationships: list[KeyRelationship] | None = None
    detailed_abilities: list[DetailedAbility] | None = None
    major_character_arcs: list[str] | None = None
    trivia: list[str] | None = None
    notable_quotes: list[str] | None = None
    advanced_relationships: list[AdvancedRelationship] | None = None
    development_timeline: list[DevelopmentPhase] | None = None

    # =====================================================================
    # OBJECT FIELDS
    # =====================================================================
    psychological_profile: PsychologicalProfile | None = None
    combat_profile: CombatProfile | None = None
    social_dynamics: SocialDynamics | None = None
    character_archetype: CharacterArchetype | None = None
    character_impact: CharacterImpact | None = None

    @classmethod
    def content_field_names(cls) -> tuple[str, ...]:
        """Names of every enriched content field."""
        return tuple(EnrichedContent.model_fields)

    def has_content(self) -> bool:
        """Return True when at least one field carries a non-empty value."""
        for name in self.content_field_names():
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, str | list) and not value:
                continue
            return True
        return False

    def content_updates(self) -> dict[str, Any]:
        """Return the populated content fields as model instances, keyed by name."""
        return {
            name: getattr(self, name)
            for name in self.content_field_names()
            if getattr(self, name) is not None
        }


# =============================================================================
# TRACKING MODELS
# =============================================================================


class EnrichmentState(BaseModel):
    """Per-character enrichment tracking fields."""

    status: EnrichmentStatus | None = Field(
        None, description="Enrichment status; None means never attempted"
    )
    attempts: int = Field(default=0, ge=0, description="Number of enrichment attempts")
    last_attempt_at: datetime | None = Field(None, description="Time of last attempt")
    last_error: str | None = Field(None, description="Error message from last failure")
    enriched_at: datetime | None = Field(None, description="Time of last success")


class ManualProtection(BaseModel):
    """Admin curation flag; protected characters are never auto-enriched."""

    protected: bool = False
    by: str | None = Field(None, description="Admin user id that set the flag")
    at: datetime | None = None


class VoiceActor(BaseModel):
    name: str
    language: str
    image_url: str | None = None


# =============================================================================
# ENTITY MODELS
# =============================================================================


class Character(EnrichedContent):
    """Character record embedded inside an anime document."""

    key: str | None = Field(
        None,
        description="Stable synthetic key assigned at ingestion; legacy records may lack it",
    )
    name: str = Field(..., description="Character name (identity within the anime)")
    alternative_names: list[str] = Field(default_factory=list)
    role: str = Field(default="SUPPORTING", description="Character role (Main, Supporting, ...)")
    description: str | None = Field(None, description="Character description/biography")
    gender: str | None = None
    age: str | None = None
    species: str | None = None
    image_url: str | None = None
    powers_abilities: list[str] = Field(default_factory=list)
    voice_actors: list[VoiceActor] = Field(default_factory=list)

    enrichment: EnrichmentState = Field(default_factory=EnrichmentState)
    manual_protection: ManualProtection = Field(default_factory=ManualProtection)

    def known_fields(self) -> dict[str, Any]:
        """Base biographical fields sent to the AI backends as context."""
        return self.model_dump(
            mode="json",
            include={
                "description",
                "role",
                "gender",
                "age",
                "species",
                "powers_abilities",
                "voice_actors",
            },
            exclude_none=True,
        )


class Anime(BaseModel):
    """Anime document owning an ordered list of embedded characters."""

    id: str = Field(..., description="Anime identifier")
    title: str = Field(..., description="Primary title")
    characters: list[Character] = Field(default_factory=list)
    version: int = Field(
        default=0, ge=0, description="Optimistic concurrency counter bumped on every write"
    )
    updated_at: datetime | None = None
