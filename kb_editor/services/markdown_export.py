"""
Markdown export of an organization's knowledge base.

Output layout:

    # Knowledge Base
    ## System Prompt Logic        (custom rules, optional)
    ## Variables                  (key/value table, optional)
    # <Section name>              (one per selected section, in section order)
    ## <Question>
    <Answer>
    *Note: <notes>*               (only when notes are non-blank)

Rendering is a pure function over plain records so that the editing session
can export its unsaved effective view and the REST endpoint can export what
is stored, with identical output.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from kb_editor.drafts import ordering
from kb_editor.drafts.records import FaqRecord, SectionRecord
from kb_editor.models.knowledge import CustomRules, ExportConfig, Faq, Section, Variable
from kb_editor.services.helpers.scoped_queries import get_scoped

logger = logging.getLogger(__name__)

EMPTY_SECTION_TEXT = "*No FAQs in this section.*"


@dataclass(frozen=True)
class ExportOptions:
    """What to include in an export.

    ``section_ids`` / ``phase_group_ids`` of None mean "no explicit
    selection": when both are None every section is exported.
    """

    include_variables: bool = True
    include_custom_rules: bool = True
    section_ids: tuple[str, ...] | None = None
    phase_group_ids: tuple[str, ...] | None = None

    @classmethod
    def from_config(cls, config: Mapping[str, Any] | None) -> "ExportOptions":
        """Build options from a stored preset (camelCase keys)."""
        config = config or {}
        section_ids = config.get("sectionIds")
        group_ids = config.get("phaseGroupIds")
        return cls(
            include_variables=bool(config.get("includeVariables", True)),
            include_custom_rules=bool(config.get("includeCustomRules", True)),
            section_ids=tuple(section_ids) if section_ids is not None else None,
            phase_group_ids=tuple(group_ids) if group_ids is not None else None,
        )


def effective_section_ids(sections: Iterable[SectionRecord], options: ExportOptions) -> set[str]:
    """Selected section ids plus every section of a selected phase group."""
    sections = list(sections)
    if options.section_ids is None and options.phase_group_ids is None:
        return {s.id for s in sections}

    selected = set(options.section_ids or ())
    groups = set(options.phase_group_ids or ())
    for section in sections:
        if section.phase_group_id and section.phase_group_id in groups:
            selected.add(section.id)
    return selected


def render_markdown(
    *,
    sections: Iterable[SectionRecord],
    faqs: Iterable[FaqRecord],
    variables: Iterable[Mapping[str, Any]] = (),
    custom_rules: str = "",
    options: ExportOptions | None = None,
) -> str:
    options = options or ExportOptions()
    sections = sorted(sections, key=lambda s: s.order)
    faqs = list(faqs)
    variables = list(variables)
    selected = effective_section_ids(sections, options)

    lines: list[str] = []
    _a = lines.append

    _a("# Knowledge Base")
    _a("")

    if options.include_custom_rules and custom_rules:
        _a("## System Prompt Logic")
        _a("")
        _a(custom_rules)
        _a("")

    if options.include_variables and variables:
        _a("## Variables")
        _a("")
        _a("| Key | Value |")
        _a("|-----|-------|")
        for var in variables:
            _a(f"| `{var['key']}` | {var.get('value') or ''} |")
        _a("")

    for section in sections:
        if section.id not in selected:
            continue
        _a(f"# {section.name}")
        _a("")

        section_faqs = ordering.sort_faqs(f for f in faqs if f.section_id == section.id)
        if not section_faqs:
            _a(EMPTY_SECTION_TEXT)
            _a("")
            continue

        for faq in section_faqs:
            _a(f"## {faq.question}")
            _a("")
            _a(faq.answer)
            _a("")
            if faq.notes.strip():
                _a(f"*Note: {faq.notes}*")
                _a("")

    return "\n".join(lines)


# ── Stored-content export ─────────────────────────────────────────────────


def options_for_org(org_id: int, config_id: str | None = None, overrides: Mapping[str, Any] | None = None) -> ExportOptions:
    """Resolve export options from a stored preset and/or request overrides."""
    config: dict = {}
    if config_id:
        preset = get_scoped(ExportConfig, config_id, org_id=org_id)
        config.update(preset.config or {})
    config.update({k: v for k, v in (overrides or {}).items() if v is not None})
    return ExportOptions.from_config(config)


def export_org_markdown(org_id: int, options: ExportOptions) -> str:
    """Render the committed knowledge base of ``org_id``."""
    sections = [
        SectionRecord.from_dict(s.to_dict())
        for s in Section.query_for_org(org_id).order_by(Section.order).all()
    ]
    faqs = [FaqRecord.from_dict(f.to_dict()) for f in Faq.query_for_org(org_id).all()]
    variables = [v.to_dict() for v in Variable.query_for_org(org_id).order_by(Variable.key).all()]
    rules = CustomRules.query_for_org(org_id).first()

    markdown = render_markdown(
        sections=sections,
        faqs=faqs,
        variables=variables,
        custom_rules=rules.content if rules else "",
        options=options,
    )
    logger.info(
        "Markdown export rendered",
        extra={"org_id": org_id, "sections": len(sections), "faqs": len(faqs), "bytes": len(markdown)},
    )
    return markdown
