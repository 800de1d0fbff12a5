"""
Memory Models - Data structures for the knowledge graph and event pipeline

WHAT: Entities, relationships, graph nodes/edges/clusters, search and processing results
WHERE: mnemos/runtime/memory/models.py - data layer
WHO: Extractor (transient entities), KnowledgeGraph (resident nodes), processors (results)
TIME: Plain dataclasses, no validation overhead on the hot path

Inbound events are validated by the pydantic contract in
``mnemos.config.events``; everything produced inside the runtime is a slotted
dataclass.

Lifecycles:
- Entity / Relationship: transient, produced by one extraction call
- KnowledgeNode / ConceptEdge: graph-resident, created on merge
- ConceptCluster: recomputed on every merge
- ProcessingResult: returned by every event processor
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

EntityType = Literal[
    "function",
    "class",
    "variable",
    "concept",
    "business_logic",
    "preference",
    "team_pattern",
]

RelationshipType = Literal[
    "implements",
    "extends",
    "uses",
    "depends_on",
    "similar_to",
    "contradicts",
    "improves",
    "replaces",
]

NodeType = Literal["function", "class", "module", "concept", "pattern"]

Complexity = Literal["low", "medium", "high"]

FilterOperator = Literal["eq", "neq", "gt", "lt", "contains", "in"]


def generate_id(prefix: str) -> str:
    """Generate a prefixed unique identifier (``entity_3f2a9c1d...``)."""
    return f"{prefix}_{uuid.uuid4().hex[:16]}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================
# Extraction (transient)
# ============================================================


@dataclass(slots=True)
class Position:
    start: int
    end: int


@dataclass(slots=True)
class Entity:
    """Extracted mention of a code construct or concept, pre-graph."""

    id: str
    text: str
    type: EntityType
    position: Position
    attributes: Dict[str, Any] = field(default_factory=dict)
    embedding: Optional[List[float]] = None


@dataclass(slots=True)
class Relationship:
    """Typed directed link between two entities."""

    id: str
    source_entity_id: str
    target_entity_id: str
    type: RelationshipType
    confidence: float
    bidirectional: bool = False
    metadata: Optional[Dict[str, Any]] = None


@dataclass(slots=True)
class ExtractionResult:
    entities: List[Entity] = field(default_factory=list)
    relationships: List[Relationship] = field(default_factory=list)
    confidence: float = 0.0

    @property
    def is_empty(self) -> bool:
        return not self.entities

    def summary(self) -> Dict[str, Any]:
        return {
            "entities": len(self.entities),
            "relationships": len(self.relationships),
            "confidence": self.confidence,
        }


# ============================================================
# Graph (resident)
# ============================================================


@dataclass(slots=True)
class NodeMetadata:
    complexity: Complexity = "low"
    quality: float = 0.0
    relevance: float = 1.0
    language: Optional[str] = None
    domain: Optional[str] = None


@dataclass(slots=True)
class KnowledgeNode:
    """Graph vertex derived from one or more entities."""

    id: str
    type: NodeType
    name: str
    content: str
    embedding: List[float]
    confidence: float
    last_accessed: datetime = field(default_factory=utcnow)
    access_count: int = 1
    metadata: NodeMetadata = field(default_factory=NodeMetadata)

    def touch(self) -> None:
        """Record a read."""
        self.access_count += 1
        self.last_accessed = utcnow()


@dataclass(slots=True)
class ConceptEdge:
    """Persisted form of a relationship; ``weight`` equals the relationship confidence."""

    id: str
    source_id: str
    target_id: str
    type: RelationshipType
    weight: float
    confidence: float
    bidirectional: bool = False

    def touches(self, node_id: str) -> bool:
        return self.source_id == node_id or self.target_id == node_id


@dataclass(slots=True)
class ConceptCluster:
    id: str
    name: str
    node_ids: List[str]
    centroid: List[float]
    coherence: float


# ============================================================
# Search / statistics
# ============================================================


@dataclass(slots=True)
class SearchFilter:
    field: str
    operator: FilterOperator
    value: Any


@dataclass(slots=True)
class SearchOptions:
    query: str
    top_k: int = 10
    min_similarity: float = 0.5
    filters: List[SearchFilter] = field(default_factory=list)
    include_relationships: bool = False


@dataclass(slots=True)
class SearchResult:
    node: KnowledgeNode
    similarity: float
    relationships: Optional[List[ConceptEdge]] = None


@dataclass(slots=True)
class GraphStatistics:
    total_nodes: int = 0
    total_edges: int = 0
    total_clusters: int = 0
    node_types: Dict[str, int] = field(default_factory=dict)
    edge_types: Dict[str, int] = field(default_factory=dict)
    average_degree: float = 0.0
    density: float = 0.0


# ============================================================
# Event processing
# ============================================================

MemorySystem = Literal["system1", "system2", "both"]
UpdateOperation = Literal["add", "update", "remove"]


@dataclass(slots=True)
class MemoryUpdate:
    """A single change destined for the dual memory store."""

    type: MemorySystem
    operation: UpdateOperation
    target: str
    data: Any
    metadata: Optional[Dict[str, Any]] = None


@dataclass(slots=True)
class GraphUpdate:
    operation: Literal["add_node", "add_edge", "update_node", "remove_node"]
    data: Any


@dataclass(slots=True)
class LearningTrigger:
    type: Literal["pattern_detected", "threshold_reached", "anomaly_detected"]
    data: Any
    action: Literal["train", "adapt", "alert"]


@dataclass(slots=True)
class ProcessingResult:
    """Contract returned by every event processor."""

    success: bool
    memory_updates: List[MemoryUpdate] = field(default_factory=list)
    graph_updates: Optional[List[GraphUpdate]] = None
    learning_triggers: Optional[List[LearningTrigger]] = None
    error: Optional[BaseException] = None

    @classmethod
    def failure(cls, error: BaseException) -> "ProcessingResult":
        return cls(success=False, memory_updates=[], error=error)


__all__ = [
    "Complexity",
    "ConceptCluster",
    "ConceptEdge",
    "Entity",
    "EntityType",
    "ExtractionResult",
    "FilterOperator",
    "GraphStatistics",
    "GraphUpdate",
    "KnowledgeNode",
    "LearningTrigger",
    "MemorySystem",
    "MemoryUpdate",
    "NodeMetadata",
    "NodeType",
    "Position",
    "ProcessingResult",
    "Relationship",
    "RelationshipType",
    "SearchFilter",
    "SearchOptions",
    "SearchResult",
    "generate_id",
    "utcnow",
]
