import asyncio
from typing import Dict, List

import numpy as np
import pytest

from mnemos.embedders import EmbedderBase
from mnemos.runtime.memory.extraction import EntityExtractor, extraction_confidence
from mnemos.runtime.memory.models import Entity, Position, Relationship

JS_SOURCE = """import React from 'react'
class Widget extends Component {}
function renderWidget(props) {}
const limit = 10
"""

PY_SOURCE = """from typing import List
import os

class Repo(Base):
    def load(self):
        pass

async def fetch_all(url):
    return url
"""


class OneHotEmbedder(EmbedderBase):
    """Every distinct text gets its own axis, so no two entities are similar."""

    def __init__(self, dim: int = 32) -> None:
        self._dim = dim
        self._axes: Dict[str, int] = {}

    @property
    def dim(self) -> int:
        return self._dim

    def embed_documents(self, texts, batch_size=None):
        out = np.zeros((len(texts), self._dim), dtype=np.float32)
        for row, text in enumerate(texts):
            out[row, self._axes.setdefault(text, len(self._axes))] = 1.0
        return out


class ConstantEmbedder(EmbedderBase):
    @property
    def dim(self) -> int:
        return 3

    def embed_documents(self, texts, batch_size=None):
        return np.tile(np.asarray([1.0, 0.0, 0.0], dtype=np.float32), (len(texts), 1))


class BrokenEmbedder(EmbedderBase):
    @property
    def dim(self) -> int:
        return 3

    def embed_documents(self, texts, batch_size=None):
        raise RuntimeError("model offline")


def _extract(text, embedder=None, context=None):
    extractor = EntityExtractor(embedder or OneHotEmbedder())
    return asyncio.run(extractor.extract(text, context))


def _by_text(entities: List[Entity]) -> Dict[str, Entity]:
    return {e.text: e for e in entities}


def test_js_entities_and_placeholder_parent():
    result = _extract(JS_SOURCE)
    entities = _by_text(result.entities)

    assert set(entities) == {"renderWidget", "limit", "Widget", "Component", "react"}
    assert entities["renderWidget"].type == "function"
    assert entities["limit"].type == "variable"
    assert entities["Widget"].type == "class"
    assert entities["react"].type == "concept"
    assert entities["react"].attributes["kind"] == "module"

    placeholder = entities["Component"]
    assert placeholder.attributes["source"] == "inferred"
    assert placeholder.position == Position(0, 0)

    (rel,) = result.relationships
    assert rel.type == "extends"
    assert rel.source_entity_id == entities["Widget"].id
    assert rel.target_entity_id == placeholder.id
    assert rel.confidence == pytest.approx(0.95)
    assert result.confidence == pytest.approx(0.95)


def test_python_entities_and_positions():
    result = _extract(PY_SOURCE)
    entities = _by_text(result.entities)

    assert set(entities) == {"load", "fetch_all", "Repo", "Base", "typing", "os"}
    assert entities["load"].position.start == PY_SOURCE.index("def load")
    assert entities["Base"].attributes["source"] == "inferred"
    assert entities["os"].attributes["source"] == "import"
    assert [r.type for r in result.relationships] == ["extends"]


def test_declared_parent_is_linked_without_placeholder():
    result = _extract("class Base {}\nclass Child extends Base {}\n")
    entities = _by_text(result.entities)
    assert len(result.entities) == 2
    (rel,) = result.relationships
    assert rel.target_entity_id == entities["Base"].id


def test_metaclass_and_object_bases_are_not_parents():
    result = _extract("class Meta(metaclass=ABCMeta):\n    pass\n\nclass Plain(object):\n    pass\n")
    assert {e.text for e in result.entities} == {"Meta", "Plain"}
    assert result.relationships == []


def test_similar_entities_are_linked_bidirectionally():
    result = _extract("function alpha() {}\nfunction beta() {}\n", embedder=ConstantEmbedder())
    (rel,) = result.relationships
    assert rel.type == "similar_to"
    assert rel.bidirectional is True
    assert rel.metadata["similarity"] == pytest.approx(1.0)


def test_context_is_copied_into_attributes():
    result = _extract("def run():\n    pass\n", context={"type": "code_generation"})
    (entity,) = result.entities
    assert entity.attributes["context"] == {"type": "code_generation"}
    assert entity.attributes["source"] == "pattern_extraction"


def test_embedding_failure_keeps_entities():
    result = _extract("def run():\n    pass\n", embedder=BrokenEmbedder())
    (entity,) = result.entities
    assert entity.embedding is None
    assert result.relationships == []


@pytest.mark.parametrize("text", ["", "   \n", None, 42])
def test_empty_or_non_text_input_yields_empty_result(text):
    result = _extract(text)
    assert result.entities == []
    assert result.relationships == []
    assert result.confidence == 0.0


def test_extraction_is_deterministic_for_identical_text():
    extractor = EntityExtractor()
    first = asyncio.run(extractor.extract(JS_SOURCE))
    second = asyncio.run(extractor.extract(JS_SOURCE))

    def shape(result):
        return (
            [(e.text, e.type, e.position) for e in result.entities],
            sorted(r.type for r in result.relationships),
        )

    assert shape(first) == shape(second)
    assert first.confidence == second.confidence


def test_confidence_formula():
    entities = [Entity(id=f"e{i}", text=f"t{i}", type="concept", position=Position(0, 0)) for i in range(2)]
    assert extraction_confidence([], []) == 0.0
    assert extraction_confidence(entities, []) == pytest.approx(0.75)
    rel = Relationship(id="r", source_entity_id="e0", target_entity_id="e1", type="uses", confidence=0.5)
    assert extraction_confidence(entities[:1], [rel]) == pytest.approx(0.7)
    many = entities * 10
    assert extraction_confidence(many, [rel]) == pytest.approx(0.95)
