"""Generation models: configuration, session state, progress and results.

This module contains every record that flows through a generation run:
- Config: CollectionInfo, GenerationConfig (with YAML I/O)
- State: SessionStatus, GenerationSession
- Progress: ProgressSnapshot
- Output: TraitAttribute, ItemMetadata, GenerationResult
"""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

# layer name -> trait name -> non-negative weight
WeightTable = dict[str, dict[str, float]]

# layer name -> selected trait name
Combination = dict[str, str]


# =============================================================================
# Configuration
# =============================================================================


class CollectionInfo(BaseModel):
    """Collection-level details stamped onto every artifact's metadata."""

    name: str = ""
    symbol: str = ""
    description: str = ""
    royalties: float = Field(default=0.0, description="Royalty share in percent")
    price: float | None = None
    external_url: str | None = None
    creator: str = ""


class GenerationConfig(BaseModel):
    """Everything needed to generate a collection from a session's layers.

    Field names also accept the short aliases used by saved configuration
    documents (`order`, `rarity`, `supply`).
    """

    model_config = ConfigDict(populate_by_name=True)

    layer_order: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("layer_order", "order"),
    )
    weights: WeightTable = Field(
        default_factory=dict,
        validation_alias=AliasChoices("weights", "rarity"),
    )
    target_supply: int = Field(
        default=0,
        validation_alias=AliasChoices("target_supply", "supply"),
    )
    collection: CollectionInfo = Field(default_factory=CollectionInfo)
    created_at: datetime = Field(default_factory=datetime.now)

    def to_yaml(self, path: Path | str) -> None:
        """Save config to YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = self.model_dump(mode="json")

        with open(path, "w") as f:
            yaml.dump(
                data, f, default_flow_style=False, sort_keys=False, allow_unicode=True
            )

    @classmethod
    def from_yaml(cls, path: Path | str) -> "GenerationConfig":
        """Load config from YAML file."""
        path = Path(path)

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls.model_validate(data)


# =============================================================================
# Session state
# =============================================================================


class SessionStatus(str, Enum):
    PENDING = "pending"
    GENERATING = "generating"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETED, SessionStatus.ERROR)

    @property
    def is_running(self) -> bool:
        return self in (SessionStatus.GENERATING, SessionStatus.UPLOADING)


class GenerationSession(BaseModel):
    """Lifecycle record for one collection's generation run."""

    id: str
    layer_order: list[str]
    weights: WeightTable
    target_supply: int
    collection: CollectionInfo
    status: SessionStatus = SessionStatus.PENDING
    produced_count: int = 0
    total: int = 0
    error: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    last_activity: datetime = Field(default_factory=datetime.now)

    @classmethod
    def from_config(cls, session_id: str, config: GenerationConfig) -> "GenerationSession":
        return cls(
            id=session_id,
            layer_order=list(config.layer_order),
            weights={k: dict(v) for k, v in config.weights.items()},
            target_supply=config.target_supply,
            collection=config.collection.model_copy(),
            total=config.target_supply,
            created_at=config.created_at,
        )

    def to_config(self) -> GenerationConfig:
        return GenerationConfig(
            layer_order=list(self.layer_order),
            weights={k: dict(v) for k, v in self.weights.items()},
            target_supply=self.target_supply,
            collection=self.collection.model_copy(),
            created_at=self.created_at,
        )


# =============================================================================
# Progress
# =============================================================================


class ProgressSnapshot(BaseModel):
    """Latest known progress of a session; replaced wholesale on every update."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    status: SessionStatus = SessionStatus.PENDING
    percentage: float = 0.0
    current: int = 0
    total: int = 0
    message: str = ""
    error: str | None = None
    updated_at: datetime = Field(default_factory=datetime.now)


# =============================================================================
# Output
# =============================================================================


class TraitAttribute(BaseModel):
    trait_type: str
    value: str


class ItemMetadata(BaseModel):
    """Metadata document for a single generated artifact."""

    name: str
    description: str = ""
    image: str = ""
    attributes: list[TraitAttribute] = Field(default_factory=list)
    properties: dict[str, Any] = Field(default_factory=dict)
    collection: dict[str, str] = Field(default_factory=dict)


class GenerationResult(BaseModel):
    """Outcome of a successful generation run. Read-only once produced."""

    session_id: str
    artifact_uris: list[str]
    metadata_base_uri: str
    total_supply: int
    metadata: list[ItemMetadata] = Field(default_factory=list)
    collection: CollectionInfo = Field(default_factory=CollectionInfo)
    completed_at: datetime = Field(default_factory=datetime.now)
