"""
Entity Extraction - Lexical code entity and relationship detection

WHAT: Regex passes over source text producing typed entities and relationships
WHERE: mnemos/runtime/memory/extraction.py - extraction layer feeding the graph
WHO: Event processors turning generated code / free text into graph updates
TIME: Linear in text length plus O(n²) pairwise similarity over entities

Passes (independent, each match yields one entity; positions are character
offsets of the whole match):
- functions: JS ``function f(`` / ``const f = (...)`` / ``= async``, Python ``def f(``
- variables: JS ``const|let|var x = <non-function>``
- classes: JS ``class A extends B``, Python ``class A(B):``; a parent yields an
  ``extends`` relationship, with a placeholder entity when the parent is not
  declared in the same text
- imports: JS ``import ... from 'm'``, Python ``import m`` / ``from m import``

Same-typed entity pairs with cosine similarity above the threshold are linked
by a bidirectional ``similar_to`` relationship. Extraction never raises:
unparseable or empty input yields an empty, confidence-0 result.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Mapping, Optional

from ...config.settings import GraphConfig
from ...embedders import EmbedderBase, cosine_similarity, create_embedder
from .models import Entity, EntityType, ExtractionResult, Position, Relationship, generate_id

logger = logging.getLogger(__name__)

FUNCTION_PATTERNS = (
    re.compile(r"\b(?:function|const|let|var)\s+(\w+)\s*=?\s*(?:\([^)]*\)|async\b)"),
    re.compile(r"\b(?:async\s+)?def\s+(\w+)\s*\("),
)
VARIABLE_PATTERN = re.compile(r"\b(?:const|let|var)\s+(\w+)\s*=\s*(?!\(|async\b)")
CLASS_PATTERN = re.compile(r"\bclass\s+(\w+)(?:\s+extends\s+([\w.]+)|\s*\(\s*([\w.]+)\b(?!\s*=))?")
IMPORT_PATTERNS = (
    re.compile(
        r"\bimport\s+(?:\{[^}]*\}|\*\s+as\s+\w+|\w+)(?:\s*,\s*\{[^}]*\})?\s+from\s+['\"]([^'\"]+)['\"]"
    ),
    re.compile(r"^[ \t]*from\s+([\w.]+)\s+import\b", re.MULTILINE),
    re.compile(r"^[ \t]*import\s+([\w.]+)(?:\s+as\s+\w+)?[ \t]*(?:,|;|#|$)", re.MULTILINE),
)

EXTENDS_CONFIDENCE = 0.95
IGNORED_PARENTS = frozenset({"object"})


def extraction_confidence(entities: List[Entity], relationships: List[Relationship]) -> float:
    """``min(0.95, 0.5 + 0.05·|E| + 0.3·avg(rel.confidence))``; 0 without entities."""
    if not entities:
        return 0.0
    if relationships:
        avg = sum(r.confidence for r in relationships) / len(relationships)
    else:
        avg = 0.5
    return min(0.95, 0.5 + len(entities) * 0.05 + avg * 0.3)


class EntityExtractor:
    """Pattern-based entity/relationship extractor with embedding similarity links."""

    def __init__(
        self,
        embedder: Optional[EmbedderBase] = None,
        *,
        config: Optional[GraphConfig] = None,
    ) -> None:
        self.embedder = embedder or create_embedder()
        self.config = config or GraphConfig()

    async def extract(self, text: Any, context: Optional[Mapping[str, Any]] = None) -> ExtractionResult:
        if not isinstance(text, str) or not text.strip():
            return ExtractionResult()

        entities: List[Entity] = []
        entities.extend(self._match_functions(text))
        entities.extend(self._match_variables(text))
        class_entities, relationships = self._match_classes(text, entities)
        entities.extend(class_entities)
        entities.extend(self._match_imports(text))

        if context:
            for entity in entities:
                entity.attributes["context"] = dict(context)

        await self._attach_embeddings(entities)
        relationships.extend(self._similarity_relationships(entities))

        result = ExtractionResult(
            entities=entities,
            relationships=relationships,
            confidence=extraction_confidence(entities, relationships),
        )
        logger.debug(f"Extracted {result.summary()}")
        return result

    # ------------------ lexical passes ------------------
    @staticmethod
    def _entity(
        name: str,
        entity_type: EntityType,
        match: Optional[re.Match[str]],
        **attributes: Any,
    ) -> Entity:
        position = Position(match.start(), match.end()) if match else Position(0, 0)
        attrs: Dict[str, Any] = {"source": "pattern_extraction"}
        attrs.update(attributes)
        return Entity(
            id=generate_id("entity"),
            text=name,
            type=entity_type,
            position=position,
            attributes=attrs,
        )

    def _match_functions(self, text: str) -> List[Entity]:
        found: List[Entity] = []
        for pattern in FUNCTION_PATTERNS:
            for m in pattern.finditer(text):
                found.append(self._entity(m.group(1), "function", m))
        return found

    def _match_variables(self, text: str) -> List[Entity]:
        return [self._entity(m.group(1), "variable", m) for m in VARIABLE_PATTERN.finditer(text)]

    def _match_classes(self, text: str, declared: List[Entity]) -> tuple[List[Entity], List[Relationship]]:
        matches = list(CLASS_PATTERN.finditer(text))
        classes = [self._entity(m.group(1), "class", m) for m in matches]

        # Parents resolve to the first class of that name, else the first declaration
        by_name: Dict[str, Entity] = {e.text: e for e in reversed(declared)}
        for entity in reversed(classes):
            by_name[entity.text] = entity

        placeholders: Dict[str, Entity] = {}
        relationships: List[Relationship] = []
        for m, child in zip(matches, classes):
            parent_name = m.group(2) or m.group(3)
            if not parent_name or parent_name in IGNORED_PARENTS:
                continue
            parent = by_name.get(parent_name) or placeholders.get(parent_name)
            if parent is None:
                parent = self._entity(parent_name, "class", None, source="inferred")
                placeholders[parent_name] = parent
            relationships.append(
                Relationship(
                    id=generate_id("rel"),
                    source_entity_id=child.id,
                    target_entity_id=parent.id,
                    type="extends",
                    confidence=EXTENDS_CONFIDENCE,
                    bidirectional=False,
                )
            )
        return classes + list(placeholders.values()), relationships

    def _match_imports(self, text: str) -> List[Entity]:
        found: List[Entity] = []
        for pattern in IMPORT_PATTERNS:
            for m in pattern.finditer(text):
                found.append(self._entity(m.group(1), "concept", m, kind="module", source="import"))
        return found

    # ------------------ embeddings ------------------
    async def _attach_embeddings(self, entities: List[Entity]) -> None:
        for entity in entities:
            try:
                entity.embedding = await self.embedder.embed(entity.text)
            except Exception as e:
                logger.warning(f"Failed to embed entity '{entity.text}': {e}")
                entity.embedding = None

    def _similarity_relationships(self, entities: List[Entity]) -> List[Relationship]:
        relationships: List[Relationship] = []
        threshold = self.config.similarity_threshold
        for i, left in enumerate(entities):
            if left.embedding is None:
                continue
            for right in entities[i + 1 :]:
                if right.embedding is None or right.type != left.type:
                    continue
                similarity = cosine_similarity(left.embedding, right.embedding)
                if similarity > threshold:
                    relationships.append(
                        Relationship(
                            id=generate_id("rel"),
                            source_entity_id=left.id,
                            target_entity_id=right.id,
                            type="similar_to",
                            confidence=similarity,
                            bidirectional=True,
                            metadata={"similarity": similarity},
                        )
                    )
        return relationships


__all__ = ["EntityExtractor", "extraction_confidence"]
