#!/usr/bin/env python3
"""
sync.py

SyncEngine — the single write path into the design catalog.

Owns the upsert pipeline for components:

    lookup by name → embed → diff + change log → merge row → rebuild edges

Each sync runs inside one SQLite transaction, so readers never see a row
update without its change-log entry and dependency edges.  Only the
optional LanceDB mirror is written after commit.

Author: Eric G. Suchanek, PhD
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields
from typing import Any, Iterable, List, Mapping, Optional, Union

from design_kg.deps import match_dependencies
from design_kg.embed import Embedder
from design_kg.errors import ValidationError
from design_kg.index import CatalogIndex
from design_kg.store import SOURCES, TIERS, CatalogStore

logger = logging.getLogger(__name__)

# Optional fields diffed against the stored row, in change-log order
_DIFF_FIELDS = ("usage_rules", "requirements", "examples", "imports")

# Optional fields that keep their stored value when omitted
_MERGE_FIELDS = (
    "props_schema",
    "usage_rules",
    "requirements",
    "examples",
    "imports",
    "version",
)

_CAMEL_ALIASES = {
    "propsSchema": "props_schema",
    "usageRules": "usage_rules",
}


# ---------------------------------------------------------------------------
# Input / result types
# ---------------------------------------------------------------------------


@dataclass
class ComponentInput:
    """
    One incoming component definition.

    ``None`` means "not supplied": the stored value is kept on update.

    :param name: Unique component name.
    :param tier: ``atom``, ``molecule`` or ``organism``.
    :param code: Source text; authoritative for dependency detection.
    :param source: Provenance: ``figma``, ``codebase`` or ``manual``.
    """

    name: str
    tier: str
    code: str
    source: str = "manual"
    props_schema: Any = None
    usage_rules: Optional[str] = None
    requirements: Optional[str] = None
    examples: Optional[str] = None
    version: Optional[str] = None
    imports: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValidationError("Component name is required")
        if self.tier not in TIERS:
            raise ValidationError(
                f"Invalid tier {self.tier!r}; expected one of {', '.join(TIERS)}"
            )
        if self.source not in SOURCES:
            raise ValidationError(
                f"Invalid source {self.source!r}; expected one of {', '.join(SOURCES)}"
            )
        if not isinstance(self.code, str):
            raise ValidationError("Component code must be a string")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ComponentInput":
        """
        Build from a mapping with snake_case or camelCase keys.

        :raises ValidationError: on unknown or missing keys.
        """
        known = {f.name for f in fields(cls)}
        kwargs: dict = {}
        for key, value in data.items():
            field = _CAMEL_ALIASES.get(key, key)
            if field not in known:
                raise ValidationError(f"Unknown component field: {key!r}")
            kwargs[field] = value
        missing = [f for f in ("name", "tier", "code") if f not in kwargs]
        if missing:
            raise ValidationError(f"Missing required field(s): {', '.join(missing)}")
        return cls(**kwargs)


@dataclass
class SyncResult:
    """
    Outcome of :meth:`SyncEngine.sync_component`.

    :param id: Component id.
    :param name: Component name.
    :param is_new: ``True`` when the row was inserted.
    :param dependencies_found: Names of the matched child components.
    """

    id: int
    name: str
    is_new: bool
    dependencies_found: List[str]

    def to_dict(self) -> dict:
        return asdict(self)


ComponentLike = Union[ComponentInput, Mapping[str, Any]]


# ---------------------------------------------------------------------------
# Embedding text
# ---------------------------------------------------------------------------


def embedding_text(
    name: str,
    tier: str,
    usage_rules: Optional[str] = None,
    requirements: Optional[str] = None,
) -> str:
    """
    Canonical text embedded for a component.

    Stable — changing this invalidates every stored embedding.
    """
    return " — ".join(p for p in (name, tier, usage_rules, requirements) if p)


def token_embedding_text(
    name: str,
    category: str,
    description: Optional[str] = None,
) -> str:
    """Canonical text embedded for a design token."""
    return " — ".join(p for p in (name, category, description) if p)


def changed_fields(existing: Mapping[str, Any], incoming: ComponentInput) -> List[str]:
    """
    Names of the fields *incoming* would change on *existing*.

    ``code`` is always compared; optional fields only when supplied;
    ``props_schema`` counts as changed whenever it is supplied.
    """
    changed: List[str] = []
    if existing.get("code") != incoming.code:
        changed.append("code")
    for field in _DIFF_FIELDS:
        value = getattr(incoming, field)
        if value is not None and existing.get(field) != value:
            changed.append(field)
    if incoming.props_schema is not None:
        changed.append("props_schema")
    return changed


# ---------------------------------------------------------------------------
# SyncEngine
# ---------------------------------------------------------------------------


class SyncEngine:
    """
    Upsert pipeline for components and tokens.

    Example::

        engine = SyncEngine(store, embedder)
        result = engine.sync_component(
            {"name": "SearchBar", "tier": "molecule", "code": src, "source": "manual"}
        )
        print(result.dependencies_found)

    :param store: Authoritative :class:`~design_kg.store.CatalogStore`.
    :param embedder: Embedding backend chosen at startup.
    :param index: Optional LanceDB mirror refreshed after each commit.
    """

    def __init__(
        self,
        store: CatalogStore,
        embedder: Embedder,
        *,
        index: Optional[CatalogIndex] = None,
    ) -> None:
        self.store = store
        self.embedder = embedder
        self.index = index

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    def sync_component(self, data: ComponentLike) -> SyncResult:
        """
        Insert or update one component and rebuild its dependency edges.

        A new component gets one change-log entry with no ``code_before``.
        A sync that changes nothing still refreshes the embedding and
        ``updated_at`` but writes no change-log entry.  Any failure rolls
        back the whole sync and propagates.

        :param data: :class:`ComponentInput` or an equivalent mapping.
        :return: :class:`SyncResult`.
        """
        comp = data if isinstance(data, ComponentInput) else ComponentInput.from_dict(data)

        with self.store.transaction():
            existing = self.store.component(name=comp.name)
            embedding = self.embedder.embed(
                embedding_text(comp.name, comp.tier, comp.usage_rules, comp.requirements)
            )

            if existing is not None:
                component_id = existing["id"]
                changed = changed_fields(existing, comp)
                if changed:
                    self.store.append_change_log(
                        component_id,
                        source=comp.source,
                        code_before=existing["code"],
                        code_after=comp.code,
                        fields_changed=changed,
                    )
                    logger.debug("%s: changed %s", comp.name, ", ".join(changed))

                row = {
                    "code": comp.code,
                    "tier": comp.tier,
                    "source": comp.source,
                    "embedding": embedding,
                }
                for field in _MERGE_FIELDS:
                    value = getattr(comp, field)
                    if value is not None:
                        row[field] = value
                self.store.update_component(component_id, row)
                is_new = False
            else:
                row = {
                    "name": comp.name,
                    "tier": comp.tier,
                    "code": comp.code,
                    "source": comp.source,
                    "embedding": embedding,
                }
                for field in _MERGE_FIELDS:
                    row[field] = getattr(comp, field)
                component_id = self.store.insert_component(row)
                # creation is logged as a diff against an empty row
                self.store.append_change_log(
                    component_id,
                    source=comp.source,
                    code_before=None,
                    code_after=comp.code,
                    fields_changed=changed_fields({}, comp),
                )
                is_new = True

            deps = self.rebuild_dependencies(component_id, comp.code)

        self._mirror_component(component_id, comp.name, comp.tier, embedding)
        logger.info(
            "synced %s (%s, %d dependencies)",
            comp.name,
            "new" if is_new else "updated",
            len(deps),
        )
        return SyncResult(
            id=component_id, name=comp.name, is_new=is_new, dependencies_found=deps
        )

    def rebuild_dependencies(self, component_id: int, code: str) -> List[str]:
        """
        Replace every outgoing edge of *component_id* with the edges *code* implies.

        Full replace, never an incremental merge: edges from earlier code
        versions never survive.

        :return: Matched child names in match order.
        """
        with self.store.transaction():
            matched = match_dependencies(self.store, code, exclude_id=component_id)
            self.store.delete_dependencies(component_id)
            if matched:
                self.store.insert_dependencies(component_id, [m["id"] for m in matched])
        return [m["name"] for m in matched]

    def bulk_sync(self, items: Iterable[ComponentLike]) -> List[SyncResult]:
        """
        Sync each item strictly in order.

        Each item commits on its own; the first failure aborts the rest.
        """
        return [self.sync_component(item) for item in items]

    def detect_dependencies(self, name: str) -> Optional[dict]:
        """
        Re-derive the edges of a stored component from its current code.

        :return: ``{"name", "dependencies"}`` or ``None`` if *name* is unknown.
        """
        existing = self.store.component(name=name)
        if existing is None:
            return None
        deps = self.rebuild_dependencies(existing["id"], existing["code"])
        return {"name": name, "dependencies": deps}

    def update_context(
        self,
        name: str,
        *,
        usage_rules: Optional[str] = None,
        requirements: Optional[str] = None,
        examples: Optional[str] = None,
    ) -> Optional[dict]:
        """
        Partially update the descriptive fields of a component and re-embed it.

        :raises ValidationError: if no field is given.
        :return: ``{"id", "name", "updated"}`` or ``None`` if *name* is unknown.
        """
        if not (usage_rules or requirements or examples):
            raise ValidationError(
                "Provide at least one of usage_rules, requirements, or examples"
            )

        with self.store.transaction():
            existing = self.store.component(name=name)
            if existing is None:
                return None
            new_rules = usage_rules if usage_rules is not None else existing["usage_rules"]
            new_reqs = requirements if requirements is not None else existing["requirements"]
            new_examples = examples if examples is not None else existing["examples"]

            embedding = self.embedder.embed(
                embedding_text(existing["name"], existing["tier"], new_rules, new_reqs)
            )
            self.store.update_component(
                existing["id"],
                {
                    "usage_rules": new_rules,
                    "requirements": new_reqs,
                    "examples": new_examples,
                    "embedding": embedding,
                },
            )

        self._mirror_component(existing["id"], existing["name"], existing["tier"], embedding)
        logger.info("updated context of %s", name)
        return {"id": existing["id"], "name": existing["name"], "updated": True}

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    def add_token(
        self,
        *,
        name: str,
        category: str,
        value: str,
        description: Optional[str] = None,
    ) -> dict:
        """
        Embed and insert a design token.

        :return: The stored token row without its embedding.
        """
        if not name or not category or value is None:
            raise ValidationError("Token name, category and value are required")
        embedding = self.embedder.embed(token_embedding_text(name, category, description))
        row = self.store.insert_token(
            name=name,
            category=category,
            value=value,
            description=description,
            embedding=embedding,
        )
        if self.index is not None:
            self.index.upsert("tokens", {"id": row["id"], "name": name, "vector": embedding})
        logger.info("added token %s", name)
        return row

    def link_token(
        self,
        component: str,
        token: str,
        property: Optional[str] = None,
    ) -> Optional[dict]:
        """
        Record that *component* uses *token* for *property*.

        :return: ``{"component", "token", "property", "created"}`` or
                 ``None`` if either side is unknown.
        """
        component_id = self.store.component_id(component)
        tok = self.store.token(token)
        if component_id is None or tok is None:
            return None
        created = self.store.link_token(component_id, tok["id"], property)
        return {
            "component": component,
            "token": token,
            "property": property,
            "created": created,
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _mirror_component(
        self,
        component_id: int,
        name: str,
        tier: str,
        embedding: List[float],
    ) -> None:
        if self.index is not None:
            self.index.upsert(
                "components",
                {"id": component_id, "name": name, "tier": tier, "vector": embedding},
            )

    def __repr__(self) -> str:
        return f"SyncEngine(store={self.store!r}, embedder={self.embedder!r})"
