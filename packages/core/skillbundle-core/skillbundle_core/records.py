"""Pydantic models for raw catalog, profile, and stack configuration.

These are the in-memory records handed to the core by the
config-loading collaborators.  They mirror the on-disk YAML documents
one to one:

* ``skills-matrix.yaml`` -> :class:`MatrixConfig`
* ``<skill>/metadata.yaml`` -> :class:`SkillMetadataConfig`
* ``<skill>/SKILL.md`` + ``metadata.yaml`` -> :class:`SkillRecord`
* ``agents.yaml`` -> :class:`ProfilesConfig`
* ``stacks/<id>/config.yaml`` -> :class:`StackConfig`

Example ``skills-matrix.yaml``::

    version: "1.0.0"
    categories:
      styling:
        id: styling
        name: Styling
        exclusive: true
    relationships:
      conflicts:
        - skills: [scss, tailwind]
          reason: Pick one styling approach
      requires:
        - skill: zustand
          needs: [react]
          needs_any: true
          reason: Zustand bindings need React
    skill_aliases:
      react: "react (@vince)"
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CategoryConfig(BaseModel):
    """A category definition from ``skills-matrix.yaml``."""

    id: str = Field(..., description="Category identifier")
    name: str = Field(..., description="Display name")
    description: str = ""
    parent: str | None = Field(None, description="Parent category for subcategories")
    exclusive: bool = Field(True, description="Only one skill of this category may be selected")
    required: bool = Field(False, description="At least one skill must be selected")
    order: int = 0
    icon: str | None = None


class ConflictRuleConfig(BaseModel):
    skills: list[str] = Field(..., min_length=2)
    reason: str = ""


class DiscourageRuleConfig(BaseModel):
    skills: list[str] = Field(..., min_length=2)
    reason: str = ""


class RecommendRuleConfig(BaseModel):
    when: str
    suggest: list[str] = Field(..., min_length=1)
    reason: str = ""


class RequireRuleConfig(BaseModel):
    skill: str
    needs: list[str] = Field(..., min_length=1)
    needs_any: bool = Field(False, description="Any one of 'needs' suffices (OR logic)")
    reason: str = ""


class AlternativeGroupConfig(BaseModel):
    purpose: str
    skills: list[str] = Field(..., min_length=1)


class RelationshipsConfig(BaseModel):
    """All relationship rule lists of a skills matrix."""

    conflicts: list[ConflictRuleConfig] = Field(default_factory=list)
    discourages: list[DiscourageRuleConfig] = Field(default_factory=list)
    recommends: list[RecommendRuleConfig] = Field(default_factory=list)
    requires: list[RequireRuleConfig] = Field(default_factory=list)
    alternatives: list[AlternativeGroupConfig] = Field(default_factory=list)


class SuggestedStackConfig(BaseModel):
    """A pre-configured skill combination.

    ``skills`` is organized as ``{category: {subcategory: alias_or_id}}``.
    """

    id: str
    name: str
    description: str = ""
    audience: list[str] = Field(default_factory=list)
    skills: dict[str, dict[str, str]] = Field(default_factory=dict)
    philosophy: str = ""


class MatrixConfig(BaseModel):
    """Root of ``skills-matrix.yaml``."""

    version: str = Field(..., description="Schema version of the matrix")
    categories: dict[str, CategoryConfig] = Field(default_factory=dict)
    relationships: RelationshipsConfig = Field(default_factory=RelationshipsConfig)
    suggested_stacks: list[SuggestedStackConfig] = Field(default_factory=list)
    skill_aliases: dict[str, str] = Field(default_factory=dict)


class SkillMetadataConfig(BaseModel):
    """Catalog data from a skill's ``metadata.yaml``.

    Identity (``name`` and ``description``) comes from the ``SKILL.md``
    header; everything else lives here.
    """

    model_config = ConfigDict(extra="ignore")

    category: str
    category_exclusive: bool = True
    author: str = ""
    version: str | int | None = None
    cli_name: str | None = Field(None, description="Short display name")
    cli_description: str | None = Field(None, description="Short description for listings")
    usage_guidance: str | None = Field(None, description="When an agent should use the skill")
    tags: list[str] = Field(default_factory=list)
    compatible_with: list[str] = Field(default_factory=list)
    conflicts_with: list[str] = Field(default_factory=list)
    requires: list[str] = Field(default_factory=list)
    requires_setup: list[str] = Field(default_factory=list)
    provides_setup_for: list[str] = Field(default_factory=list)


class SkillRecord(BaseModel):
    """One skill as loaded from disk, before normalization.

    Attributes:
        id: Frontmatter ``name`` of the skill's ``SKILL.md``.
        description: Frontmatter ``description``.
        content: Markdown body after the header block (opaque).
        metadata: Parsed ``metadata.yaml``.
        resources: Extra files shipped with the skill, keyed by path
            relative to the skill directory.
        path: Source directory, relative to the skills root.
    """

    id: str = Field(..., min_length=1)
    description: str = ""
    content: str = ""
    metadata: SkillMetadataConfig
    resources: dict[str, str] = Field(default_factory=dict)
    path: str = ""


class AgentProfileConfig(BaseModel):
    """One agent entry of ``agents.yaml``."""

    description: str = ""
    template: str = Field("agent", description="Base template identifier")
    partials: list[str] = Field(default_factory=list, description="Ordered leading partials")
    ending_partials: list[str] = Field(default_factory=list, description="Ordered ending partials")
    preloaded_skills: list[str] = Field(default_factory=list)
    tools: list[str] = Field(default_factory=list)
    disallowed_tools: list[str] = Field(default_factory=list)
    model: str | None = None
    permission_mode: str | None = None


class ProfilesConfig(BaseModel):
    """Root of ``agents.yaml``."""

    agents: dict[str, AgentProfileConfig] = Field(default_factory=dict)


class StackConfig(BaseModel):
    """A bundle definition from ``stacks/<id>/config.yaml``.

    Attributes:
        skills: The stack's skill selection (aliases allowed).
        agents: Agent profile names compiled into the bundle.
        routing: Agent name -> skill categories relevant to it.
            Agents without an entry receive every selected skill.
        hooks: Lifecycle hook configuration, written to
            ``hooks/hooks.json`` when non-empty.
    """

    name: str
    version: str = "1.0.0"
    author: str | None = None
    author_email: str | None = None
    description: str | None = None
    skills: list[str] = Field(default_factory=list)
    agents: list[str] = Field(default_factory=list)
    routing: dict[str, list[str]] = Field(default_factory=dict)
    hooks: dict[str, list[dict[str, Any]]] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    philosophy: str | None = None
    principles: list[str] = Field(default_factory=list)
