"""
Event-Driven Memory - Knowledge Graph & Dual Memory Synchronisation

WHAT: Local library building a semantic code graph from development activity
WHERE: mnemos/runtime/memory/ - runtime orchestration subsystem
WHO: Tools submitting MemoryEvents and querying the resulting graph
TIME: Extraction + merge per event; search O(n) over embedded nodes

Components (leaf first):
- EntityExtractor: lexical entity/relationship extraction with embeddings
- KnowledgeGraph: nodes/edges/clusters, semantic search, shortest paths
- MemoryEventPipeline: priority queue, batch drain, dispatch, retries
- EventStream: filtered/transformed/buffered view over submissions
- DualMemoryStore: external system1/system2 sink (in-memory reference provided)

Operations (local library - no network services):
- submit_event(event): validate, prioritise, enqueue (critical: also run now)
- search(query, ...): embedding similarity over graph nodes
- find_path(a, b): BFS over directed (and bidirectional) edges
- get_statistics() / export_for_visualization(): read-only graph views
- create_event_stream(filter, transform, buffer_size): live submission view
"""

from .event_processor import (  # noqa: F401
    EventPriorityQueue,
    EventStatistics,
    MemoryEventPipeline,
    PipelineNotRunningError,
    QueuedEvent,
)
from .event_stream import EventStream  # noqa: F401
from .extraction import EntityExtractor  # noqa: F401
from .knowledge_graph import KnowledgeGraph  # noqa: F401
from .memory_store import DualMemoryStore, InMemoryDualMemoryStore  # noqa: F401
from .models import (  # noqa: F401
    ConceptCluster,
    ConceptEdge,
    Entity,
    ExtractionResult,
    GraphStatistics,
    GraphUpdate,
    KnowledgeNode,
    LearningTrigger,
    MemoryUpdate,
    NodeMetadata,
    Position,
    ProcessingResult,
    Relationship,
    SearchFilter,
    SearchOptions,
    SearchResult,
)
from .processors import (  # noqa: F401
    DefaultEventProcessor,
    EventProcessor,
    SessionPatternDetector,
)
from .signals import Signal, SignalHub  # noqa: F401
from .telemetry import (  # noqa: F401
    LoggingTelemetryClient,
    NoOpTelemetryClient,
    RecordingTelemetryClient,
    TelemetryClient,
    TelemetrySpan,
)

__all__ = [
    "ConceptCluster",
    "ConceptEdge",
    "DefaultEventProcessor",
    "DualMemoryStore",
    "Entity",
    "EntityExtractor",
    "EventPriorityQueue",
    "EventProcessor",
    "EventStatistics",
    "EventStream",
    "ExtractionResult",
    "GraphStatistics",
    "GraphUpdate",
    "InMemoryDualMemoryStore",
    "KnowledgeGraph",
    "KnowledgeNode",
    "LearningTrigger",
    "LoggingTelemetryClient",
    "MemoryEventPipeline",
    "MemoryUpdate",
    "NoOpTelemetryClient",
    "NodeMetadata",
    "PipelineNotRunningError",
    "Position",
    "ProcessingResult",
    "QueuedEvent",
    "RecordingTelemetryClient",
    "Relationship",
    "SearchFilter",
    "SearchOptions",
    "SearchResult",
    "SessionPatternDetector",
    "Signal",
    "SignalHub",
    "TelemetryClient",
    "TelemetrySpan",
]
