"""Turn loosely structured, AI-authored IBO markdown into a numbered hierarchy.

The model output is never guaranteed to follow a format, so classification is
heuristic: every non-trivial line is tested against an ordered rule table and
the first matching category wins. Lines matching nothing are dropped. An empty
result means the caller should show the raw text instead.
"""
from __future__ import annotations

import re
from enum import Enum
from typing import Callable, List, NamedTuple, Optional, Tuple

from pydantic import BaseModel, computed_field


class ItemKind(str, Enum):
	BUSINESS_OBJECTIVE = "business_objective"
	WIIFM = "wiifm"
	PERFORMANCE_METRIC = "performance_metric"
	OBSERVABLE_BEHAVIOR = "observable_behavior"
	LEARNING_OBJECTIVE = "learning_objective"


DEPTH_BY_KIND = {
	ItemKind.BUSINESS_OBJECTIVE: 1,
	ItemKind.WIIFM: 2,
	ItemKind.PERFORMANCE_METRIC: 2,
	ItemKind.OBSERVABLE_BEHAVIOR: 3,
	ItemKind.LEARNING_OBJECTIVE: 4,
}


class ItemPath(BaseModel):
	bo: int
	pm: Optional[int] = None
	ob: Optional[int] = None
	lo: Optional[int] = None

	def label(self) -> str:
		if self.pm is None:
			return f"BO{self.bo}"
		parts = [self.bo, self.pm, self.ob, self.lo]
		return ".".join(str(p) for p in parts if p is not None)


class ClassifiedItem(BaseModel):
	kind: ItemKind
	path: Optional[ItemPath] = None
	title: str
	depth: int

	@computed_field
	@property
	def number(self) -> Optional[str]:
		return self.path.label() if self.path is not None else None


def _any(*patterns: str) -> Callable[[str], bool]:
	compiled = [re.compile(p, re.IGNORECASE) for p in patterns]
	return lambda line: any(c.search(line) for c in compiled)


_is_business_objective = _any(
	r"^#{1,4}\s*(Business\s*Objective|IBO|Intended\s*Business\s*Outcome)",
	r"^#{1,4}\s*BO\d*",
	r"^#{1,4}\s*\d+\.\s*(Business|IBO)",
)

_is_wiifm = _any(
	r"^#{1,6}\s*WIIFM",
	r"What's\s*In\s*It\s*For\s*Me",
	r"^#{1,6}\s*Value\s*Proposition",
)

_metric_heading = _any(
	r"^#{1,6}\s*Performance\s*Metric",
	r"^#{1,6}\s*Success\s*Metric",
	r"^#{1,6}\s*KPI",
	r"^\d+\.\s*(Increase|Improvement|Reduction|Enhancement)",
)
_NUMBERED_PERCENT = re.compile(r"^\d+\.\s*\d+%")


def _is_performance_metric(line: str) -> bool:
	if _metric_heading(line) or _NUMBERED_PERCENT.search(line):
		return True
	# matched case-sensitively
	return "%" in line and ("increase" in line or "improvement" in line)


_LEARNING_OBJECTIVE_PHRASE = re.compile(r"Learning.*Objective", re.IGNORECASE)
_behavior_marker = _any(
	r"^#{1,6}\s*Observable\s*Behavior",
	r"^[-*]\s*\*\*.*demonstrate",
	r"^[-*]\s*\*\*.*exhibit",
	r"^[-*]\s*\*\*.*show",
)


def _is_observable_behavior(line: str) -> bool:
	if _behavior_marker(line):
		return True
	return line.startswith("-") and "**" in line and not _LEARNING_OBJECTIVE_PHRASE.search(line)


_is_learning_objective = _any(
	r"^#{1,6}\s*Learning\s*Objective",
	r"^[-*]\s*\*\*.*Learning.*Objective",
	r"^[-*]\s*\*\*.*learn",
	r"^[-*]\s*\*\*.*understand",
	r"^[-*]\s*\*\*.*apply",
)


# Evaluated top to bottom; the first match wins.
RULES: Tuple[Tuple[ItemKind, Callable[[str], bool]], ...] = (
	(ItemKind.BUSINESS_OBJECTIVE, _is_business_objective),
	(ItemKind.WIIFM, _is_wiifm),
	(ItemKind.PERFORMANCE_METRIC, _is_performance_metric),
	(ItemKind.OBSERVABLE_BEHAVIOR, _is_observable_behavior),
	(ItemKind.LEARNING_OBJECTIVE, _is_learning_objective),
)


def classify_line(line: str) -> Optional[ItemKind]:
	"""Return the category of a single trimmed line, or None when nothing matches."""
	for kind, matches in RULES:
		if matches(line):
			return kind
	return None


def extract_title(line: str) -> str:
	text = re.sub(r"^#{1,6}\s*", "", line)
	text = re.sub(r"^\d+\.\s*", "", text)
	text = re.sub(r"^[-*]\s*", "", text)
	text = text.replace("**", "")
	text = re.sub(r"Observable\s*Behaviors?\*\*\s*", "", text, count=1, flags=re.IGNORECASE)
	text = re.sub(r"Learning\s*Objectives?\*\*\s*", "", text, count=1, flags=re.IGNORECASE)
	return text.strip()


def extract_content(line: str) -> str:
	text = re.sub(r"^#{1,6}\s*WIIFM:\s*", "", line, count=1, flags=re.IGNORECASE)
	text = re.sub(r"^#{1,6}\s*What's In It For Me:\s*", "", text, count=1, flags=re.IGNORECASE)
	return text.replace("**", "").strip()


class Counters(NamedTuple):
	bo: int = 0
	pm: int = 0
	ob: int = 0
	lo: int = 0


def step(counters: Counters, kind: ItemKind) -> Tuple[Counters, Optional[ItemPath]]:
	"""Advance the scan state for one classified line.

	Opening a scope resets every counter below it. Wiifm lines leave the state
	untouched and get no path.
	"""
	if kind is ItemKind.BUSINESS_OBJECTIVE:
		counters = Counters(bo=counters.bo + 1)
		return counters, ItemPath(bo=counters.bo)
	if kind is ItemKind.PERFORMANCE_METRIC:
		counters = Counters(bo=counters.bo, pm=counters.pm + 1)
		return counters, ItemPath(bo=counters.bo, pm=counters.pm)
	if kind is ItemKind.OBSERVABLE_BEHAVIOR:
		counters = counters._replace(ob=counters.ob + 1, lo=0)
		return counters, ItemPath(bo=counters.bo, pm=counters.pm, ob=counters.ob)
	if kind is ItemKind.LEARNING_OBJECTIVE:
		counters = counters._replace(lo=counters.lo + 1)
		return counters, ItemPath(bo=counters.bo, pm=counters.pm, ob=counters.ob, lo=counters.lo)
	return counters, None


def classify(raw: str) -> List[ClassifiedItem]:
	"""Classify every line of ``raw`` in a single left-to-right pass.

	Lines shorter than three characters after trimming are noise. The result
	may be empty; that is not an error.
	"""
	items: List[ClassifiedItem] = []
	counters = Counters()
	for line in (raw or "").splitlines():
		trimmed = line.strip().lstrip("\ufeff").strip()
		if len(trimmed) < 3:
			continue
		kind = classify_line(trimmed)
		if kind is None:
			continue
		counters, path = step(counters, kind)
		title = extract_content(trimmed) if kind is ItemKind.WIIFM else extract_title(trimmed)
		items.append(ClassifiedItem(kind=kind, path=path, title=title, depth=DEPTH_BY_KIND[kind]))
	return items
