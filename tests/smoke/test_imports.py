def test_import_runtime_memory():
    from mnemos.runtime.memory import (  # noqa: F401
        EntityExtractor,
        KnowledgeGraph,
        MemoryEventPipeline,
    )


def test_import_event_contract_and_embedders():
    from mnemos.config.events import EventValidationError, MemoryEvent  # noqa: F401
    from mnemos.embedders import HashingEmbedder, create_embedder  # noqa: F401
