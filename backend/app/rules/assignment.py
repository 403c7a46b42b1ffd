"""Assignment Rule Engine — routes a new complaint to a staff member.

Pure functions over plain data: no DB access, no I/O. The intake service
loads the active rules, calls `select_assignee`, and persists the result.

Matching semantics:
  - Rules are tried in order; the first rule whose conditions all hold wins.
  - Absent conditions are vacuously true, so a rule without conditions is a
    catch-all.
  - Conditions are checked category → priority → keywords.
  - Keywords match as case-insensitive substrings of title or description;
    any one keyword is enough.
"""
import logging
import uuid
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

PRIORITY_LEVELS = ("low", "medium", "high", "urgent")

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


# ─── Data records ───

@dataclass(frozen=True)
class RuleConditions:
    """Fixed-schema view of the JSON `conditions` column."""

    category_id: str | None = None
    priority: str | None = None
    keywords: tuple[str, ...] = ()
    # Set when the stored blob could not be read; such a rule never matches.
    malformed: bool = False

    @classmethod
    def from_json(cls, raw: Any) -> "RuleConditions":
        """Parse a stored conditions blob. Unknown keys are ignored."""
        if raw is None:
            return cls()
        if not isinstance(raw, Mapping):
            logger.warning("Rule conditions are not an object, rule disabled: %r", raw)
            return cls(malformed=True)
        category_id = raw.get("category_id")
        priority = raw.get("priority")
        keywords = raw.get("keywords") or ()
        if isinstance(keywords, str):
            keywords = keywords.split(",")
        elif not isinstance(keywords, (list, tuple)):
            logger.warning("Rule keywords are not a list, rule disabled: %r", keywords)
            return cls(malformed=True)
        usable = tuple(k for k in keywords if isinstance(k, str))
        if keywords and not usable:
            logger.warning("Rule keywords hold no strings, rule disabled: %r", keywords)
            return cls(malformed=True)
        return cls(
            category_id=str(category_id) if category_id else None,
            priority=str(priority) if priority else None,
            keywords=usable,
        )

    def to_json(self) -> dict:
        data: dict[str, Any] = {}
        if self.category_id:
            data["category_id"] = self.category_id
        if self.priority:
            data["priority"] = self.priority
        if self.keywords:
            data["keywords"] = list(self.keywords)
        return data

    @property
    def is_catch_all(self) -> bool:
        return not (self.malformed or self.category_id or self.priority or self.keywords)


@dataclass(frozen=True)
class ComplaintFacts:
    """The complaint attributes a rule can look at."""

    priority: str
    title: str = ""
    description: str = ""
    category_id: str | None = None


@dataclass(frozen=True)
class Rule:
    id: str
    name: str
    priority: int
    assigned_to: str
    conditions: RuleConditions = field(default_factory=RuleConditions)
    is_active: bool = True
    created_at: datetime | None = None


# ─── Adapters ───

def facts_from(complaint: Any) -> ComplaintFacts:
    """Build ComplaintFacts from an ORM row, pydantic model, or dict."""
    get = complaint.get if isinstance(complaint, Mapping) else lambda k: getattr(complaint, k, None)
    category_id = get("category_id")
    return ComplaintFacts(
        priority=get("priority") or "",
        title=get("title") or "",
        description=get("description") or "",
        category_id=str(category_id) if category_id else None,
    )


def rule_from(row: Any) -> Rule:
    """Build a Rule from an AssignmentRule ORM row (or anything shaped like one)."""
    return Rule(
        id=str(row.id),
        name=row.name,
        priority=row.priority or 0,
        assigned_to=str(row.assigned_to),
        conditions=RuleConditions.from_json(row.conditions),
        is_active=bool(row.is_active),
        created_at=row.created_at,
    )


# ─── Condition checks ───

def _category_matches(conditions: RuleConditions, facts: ComplaintFacts) -> bool:
    if not conditions.category_id:
        return True
    return facts.category_id is not None and facts.category_id == conditions.category_id


def _priority_matches(conditions: RuleConditions, facts: ComplaintFacts) -> bool:
    if not conditions.priority:
        return True
    return conditions.priority in PRIORITY_LEVELS and conditions.priority == facts.priority


def _keywords_match(conditions: RuleConditions, facts: ComplaintFacts) -> bool:
    if not conditions.keywords:
        return True
    haystacks = (facts.title.lower(), facts.description.lower())
    for keyword in conditions.keywords:
        needle = keyword.strip().lower()
        if not needle:
            # A blank keyword would match everything; treat it as no keyword.
            continue
        if any(needle in text for text in haystacks):
            return True
    return False


def rule_matches(rule: Rule, facts: ComplaintFacts) -> bool:
    """True when every condition present on the rule holds for the complaint."""
    conditions = rule.conditions
    if conditions.malformed:
        return False
    return (
        _category_matches(conditions, facts)
        and _priority_matches(conditions, facts)
        and _keywords_match(conditions, facts)
    )


# ─── Ordering and selection ───

def order_rules(rules: Iterable[Rule]) -> list[Rule]:
    """Active rules in evaluation order.

    priority DESC, then created_at ASC (older rule wins a tie), then id ASC.
    """
    active = [r for r in rules if r.is_active]
    return sorted(active, key=lambda r: (-r.priority, r.created_at or _EPOCH, r.id))


def match_rule(facts: ComplaintFacts, rules: Sequence[Rule]) -> Rule | None:
    """Return the first rule, in the given order, that matches the complaint.

    Inactive rules are skipped even if the caller passed them in.
    """
    for rule in rules:
        if not rule.is_active:
            continue
        if rule_matches(rule, facts):
            return rule
    return None


def match_assignee(facts: ComplaintFacts, rules: Sequence[Rule]) -> str | None:
    """Assignee of the first matching rule in the given order, or None."""
    rule = match_rule(facts, rules)
    return rule.assigned_to if rule else None


def select_assignee(facts: ComplaintFacts, rules: Iterable[Rule]) -> tuple[uuid.UUID | None, Rule | None]:
    """Order the rules, run the matcher, and return (assignee_id, matched_rule)."""
    rule = match_rule(facts, order_rules(rules))
    if rule is None:
        logger.debug("No assignment rule matched complaint %r", facts.title)
        return None, None
    try:
        assignee = uuid.UUID(rule.assigned_to)
    except ValueError:
        logger.warning("Assignment rule %s has malformed assigned_to=%r", rule.id, rule.assigned_to)
        return None, None
    return assignee, rule
