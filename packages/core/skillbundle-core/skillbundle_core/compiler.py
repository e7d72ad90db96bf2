"""Template compiler: merge skills and prompt scaffolding into documents.

The compiler is a pure function of ``(catalog, selection, profile,
templates)``.  Templates are opaque text with ``{{ name }}`` substitution
points; nothing else in them is interpreted.

Per agent the document body is assembled in a fixed order::

    base template
    ---
    partials (unless the base inlines them)
    ---
    preloaded skills and skill index (unless inlined)
    ---
    ending partials (unless inlined)

The body is preceded by a YAML header block and written to
``agents/<name>.md``.  :func:`compile_bundle` adds one
``skills/<slug>/SKILL.md`` per skill and ``hooks/hooks.json`` when hooks
are configured.

Example::

    from skillbundle_core import compile_bundle, validate_selection

    result = validate_selection(catalog, ["react", "zustand"])
    bundle = compile_bundle(
        catalog,
        result.selection,
        profiles,
        templates,
        name="react-stack",
    )
    print(bundle.content_hash)
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from skillbundle_core.catalog import Catalog
from skillbundle_core.exceptions import MissingProfileError
from skillbundle_core.models import AgentProfile, CompiledDocument, SkillEntry, ValidatedSelection
from skillbundle_core.parsing import render_frontmatter

_logger = logging.getLogger(__name__)

SECTION_SEPARATOR = "\n\n---\n\n"
"""Separator placed between the sections of a compiled document."""

HASH_PREFIX_LENGTH = 7

AGENTS_DIR = "agents"
SKILLS_DIR = "skills"
HOOKS_PATH = "hooks/hooks.json"

_PLACEHOLDER_RE = re.compile(r"\{\{\s*([\w./-]+)\s*\}\}")


class CompileWarning(BaseModel):
    """A placeholder that had no value and was replaced with ``""``."""

    model_config = ConfigDict(frozen=True)

    agent: str
    template: str
    placeholder: str

    def __str__(self) -> str:
        return (
            f"Agent '{self.agent}': unresolved placeholder '{self.placeholder}' "
            f"in template '{self.template}'"
        )


class SkillRouting(BaseModel):
    """Which skill categories are relevant to which agent.

    A skill is relevant to an agent when its category, or one of that
    category's ancestors, is listed for the agent.  Agents without an
    entry receive every selected skill.

    Example::

        routing = SkillRouting(routes={"frontend-developer": ["frontend", "styling"]})
    """

    model_config = ConfigDict(frozen=True)

    routes: dict[str, tuple[str, ...]] = Field(default_factory=dict)

    def relevant_skills(self, agent: str, skill_ids: Iterable[str], catalog: Catalog) -> list[str]:
        """Filter *skill_ids* to those relevant to *agent*, keeping order."""
        if agent not in self.routes:
            return list(skill_ids)
        wanted = set(self.routes[agent])
        return [
            skill_id
            for skill_id in skill_ids
            if wanted.intersection(catalog.category_lineage(catalog.get_skill(skill_id).category))
        ]


class AgentCompilation(BaseModel):
    """One compiled agent document plus the warnings raised on the way."""

    model_config = ConfigDict(frozen=True)

    document: CompiledDocument
    warnings: tuple[CompileWarning, ...] = ()


class CompiledBundle(BaseModel):
    """Every document of one bundle, in output order.

    Documents are ordered agents, skills, hooks.  Two bundles compiled
    from the same inputs are equal and share a :attr:`digest`.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    documents: tuple[CompiledDocument, ...]
    warnings: tuple[CompileWarning, ...] = ()

    @property
    def paths(self) -> list[str]:
        return [d.path for d in self.documents]

    def get(self, path: str) -> CompiledDocument | None:
        for document in self.documents:
            if document.path == path:
                return document
        return None

    @property
    def digest(self) -> str:
        """SHA-256 hex digest over every document path and content."""
        sha = hashlib.sha256()
        for document in self.documents:
            sha.update(document.path.encode("utf-8"))
            sha.update(b"\0")
            sha.update(document.content.encode("utf-8"))
            sha.update(b"\0")
        return sha.hexdigest()

    @property
    def content_hash(self) -> str:
        """Short form of :attr:`digest`."""
        return self.digest[:HASH_PREFIX_LENGTH]


def content_hash(content: str) -> str:
    """Return the first seven hex characters of the SHA-256 of *content*."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:HASH_PREFIX_LENGTH]


# ------------------------------------------------------------------
# Rendering
# ------------------------------------------------------------------


def _render(
    text: str,
    context: Mapping[str, str],
    *,
    agent: str,
    template: str,
    warnings: list[CompileWarning],
    used: set[str] | None = None,
) -> str:
    def replace(match: re.Match[str]) -> str:
        key = match.group(1)
        if key in context:
            if used is not None:
                used.add(key)
            return context[key]
        warnings.append(CompileWarning(agent=agent, template=template, placeholder=key))
        _logger.warning(
            "Unresolved placeholder '%s' in template '%s' for agent '%s'", key, template, agent
        )
        return ""

    return _PLACEHOLDER_RE.sub(replace, text).strip()


def _join(sections: Iterable[str]) -> str:
    return SECTION_SEPARATOR.join(s for s in sections if s)


def _skill_index(entries: Sequence[SkillEntry]) -> str:
    if not entries:
        return ""
    lines = ["## Available Skills", ""]
    for entry in entries:
        lines.append(f"- `{entry.slug}`: {entry.usage_guidance or entry.description}".rstrip())
    return "\n".join(lines)


def _check_profile(
    catalog: Catalog, profile: AgentProfile, templates: Mapping[str, str]
) -> list[str]:
    missing = [t for t in profile.template_ids if t not in templates]
    if missing:
        raise MissingProfileError(profile.name, missing)
    preloaded = [catalog.resolve(s) for s in profile.preloaded_skills]
    unknown = [s for s in preloaded if s not in catalog]
    if unknown:
        raise MissingProfileError(profile.name, unknown, kind="skill")
    return list(dict.fromkeys(preloaded))


def _require_validated(selection: object) -> ValidatedSelection:
    if not isinstance(selection, ValidatedSelection):
        raise TypeError(
            "Compilation requires a ValidatedSelection; "
            f"got {type(selection).__name__}. Call validate_selection() first."
        )
    return selection


def compile_agent(
    catalog: Catalog,
    selection: ValidatedSelection,
    profile: AgentProfile,
    templates: Mapping[str, str],
    *,
    routing: SkillRouting | None = None,
) -> AgentCompilation:
    """Compile one agent document.

    Args:
        catalog: The catalog the selection was validated against.
        selection: A selection returned by
            :func:`~skillbundle_core.validate_selection`.
        profile: The agent to compile.
        templates: Template and partial bodies keyed by identifier.
        routing: Optional agent-to-category relevance mapping.

    Returns:
        The compiled document and any placeholder warnings.

    Raises:
        TypeError: If *selection* is not a ``ValidatedSelection``.
        MissingProfileError: If the profile references templates
            absent from *templates* (every missing id is named) or
            preloaded skills absent from *catalog*.
    """
    selection = _require_validated(selection)
    preloaded_ids = _check_profile(catalog, profile, templates)
    routing = routing or SkillRouting()

    relevant = routing.relevant_skills(profile.name, selection, catalog)
    skill_ids = list(dict.fromkeys((*preloaded_ids, *relevant)))
    preloaded = [catalog.get_skill(s) for s in preloaded_ids]
    dynamic = [catalog.get_skill(s) for s in skill_ids if s not in preloaded_ids]

    warnings: list[CompileWarning] = []
    scalars = {"name": profile.name, "description": profile.description}

    rendered: dict[str, str] = {}
    for template_id in (*profile.partials, *profile.ending_partials):
        rendered[template_id] = _render(
            templates[template_id],
            scalars,
            agent=profile.name,
            template=template_id,
            warnings=warnings,
        )

    skills_body = _join(entry.content.strip() for entry in preloaded)
    index = _skill_index(dynamic)
    context = {
        **scalars,
        **rendered,
        "skills": skills_body,
        "skill_index": index,
        "core_partials": _join(rendered[p] for p in profile.partials),
        "ending_partials": _join(rendered[p] for p in profile.ending_partials),
    }

    inlined: set[str] = set()
    base = _render(
        templates[profile.template],
        context,
        agent=profile.name,
        template=profile.template,
        warnings=warnings,
        used=inlined,
    )

    sections = [base]
    if "core_partials" not in inlined:
        sections.extend(rendered[p] for p in profile.partials if p not in inlined)
    if "skills" not in inlined:
        sections.append(skills_body)
    if "skill_index" not in inlined:
        sections.append(index)
    if "ending_partials" not in inlined:
        sections.extend(rendered[p] for p in profile.ending_partials if p not in inlined)

    header: dict[str, Any] = {
        "name": profile.name,
        "description": profile.description,
        "tools": ", ".join(profile.tools) or None,
        "disallowedTools": ", ".join(profile.disallowed_tools) or None,
        "model": profile.model,
        "permissionMode": profile.permission_mode,
        "skills": ", ".join(entry.slug for entry in preloaded) or None,
    }
    document = CompiledDocument(
        path=f"{AGENTS_DIR}/{profile.name}.md",
        content=render_frontmatter(header, _join(sections)),
        contributors=tuple(skill_ids),
    )
    _logger.debug(
        "Compiled agent '%s': %d preloaded, %d dynamic skill(s)",
        profile.name,
        len(preloaded),
        len(dynamic),
    )
    return AgentCompilation(document=document, warnings=tuple(warnings))


def _skill_documents(entry: SkillEntry) -> list[CompiledDocument]:
    base = f"{SKILLS_DIR}/{entry.slug}"
    documents = [
        CompiledDocument(
            path=f"{base}/SKILL.md",
            content=render_frontmatter(
                {"name": entry.slug, "description": entry.description}, entry.content
            ),
            contributors=(entry.id,),
        )
    ]
    for relative in sorted(entry.resources):
        documents.append(
            CompiledDocument(
                path=f"{base}/{relative}",
                content=entry.resources[relative],
                contributors=(entry.id,),
            )
        )
    return documents


def compile_bundle(
    catalog: Catalog,
    selection: ValidatedSelection,
    profiles: Sequence[AgentProfile],
    templates: Mapping[str, str],
    *,
    name: str,
    routing: SkillRouting | None = None,
    hooks: Mapping[str, Any] | None = None,
) -> CompiledBundle:
    """Compile every agent of a bundle plus its skill and hook documents.

    Args:
        catalog: The catalog the selection was validated against.
        selection: A selection returned by
            :func:`~skillbundle_core.validate_selection`.
        profiles: Agents to compile, in output order.
        templates: Template and partial bodies keyed by identifier.
        name: Bundle name.
        routing: Optional agent-to-category relevance mapping.
        hooks: Lifecycle hook configuration; written to
            ``hooks/hooks.json`` when non-empty.

    Raises:
        TypeError: If *selection* is not a ``ValidatedSelection``.
        MissingProfileError: If any profile is broken.
        ValueError: If two profiles share a name or two skills share
            an output slug.
    """
    selection = _require_validated(selection)

    seen_agents: set[str] = set()
    agent_docs: list[CompiledDocument] = []
    warnings: list[CompileWarning] = []
    skill_ids: dict[str, None] = dict.fromkeys(selection)
    for profile in profiles:
        if profile.name in seen_agents:
            raise ValueError(f"Duplicate agent profile '{profile.name}'")
        seen_agents.add(profile.name)
        compilation = compile_agent(catalog, selection, profile, templates, routing=routing)
        agent_docs.append(compilation.document)
        warnings.extend(compilation.warnings)
        skill_ids.update(dict.fromkeys(compilation.document.contributors))

    slugs: dict[str, str] = {}
    skill_docs: list[CompiledDocument] = []
    for skill_id in skill_ids:
        entry = catalog.get_skill(skill_id)
        if entry.slug in slugs:
            raise ValueError(
                f"Skills '{slugs[entry.slug]}' and '{skill_id}' "
                f"share the output name '{entry.slug}'"
            )
        slugs[entry.slug] = skill_id
        skill_docs.extend(_skill_documents(entry))

    documents = [*agent_docs, *skill_docs]
    if hooks:
        documents.append(
            CompiledDocument(path=HOOKS_PATH, content=json.dumps({"hooks": hooks}, indent=2) + "\n")
        )

    bundle = CompiledBundle(name=name, documents=tuple(documents), warnings=tuple(warnings))
    _logger.info(
        "Compiled bundle '%s': %d agent(s), %d skill(s), digest %s",
        name,
        len(agent_docs),
        len(slugs),
        bundle.content_hash,
    )
    return bundle
