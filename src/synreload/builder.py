"""Turns fetched rule text into an immutable synonym dictionary.

Two rule grammars are understood:

``solr``
    ``a, b => c``   explicit mapping: every left term maps to the right terms.
    ``a, b, c``     equivalence group: with ``expand`` every term maps to every
                    term, otherwise every term maps to the first one.
    ``\\,`` and ``\\=`` escape the separators. ``#`` starts a comment line.

``wordnet``
    Prolog facts ``s(100000001,1,'woods',n,1,0).``; consecutive facts sharing
    a synset id form one equivalence group.

Building is pure: it never touches the published dictionary, so it is safe to
run in a worker thread and to throw the result away.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

import structlog

from synreload.errors import MalformedRuleError
from synreload.models.synonyms import RuleFormat, SynonymRule

if TYPE_CHECKING:
    from synreload.config import ReloadSettings
    from synreload.models.synonyms import RawEntry

log = structlog.get_logger()

_ESCAPE_RE = re.compile(r"\\(.)")
_WORDNET_RE = re.compile(r"^s\((\d+),\d+,'((?:[^']|'')*)',[^)]*\)\.?$")


@dataclass(frozen=True)
class SynonymGroup:
    """One accepted rule: each input term is rewritten to the output terms."""

    rule: SynonymRule
    inputs: tuple[str, ...]
    outputs: tuple[str, ...]
    explicit: bool = False  # True for "=>" mappings


@dataclass(frozen=True, eq=False)
class SynonymDictionary:
    """Immutable synonym lookup structure built from one complete fetch."""

    groups: tuple[SynonymGroup, ...] = ()
    index: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType({}), repr=False
    )

    @classmethod
    def empty(cls) -> SynonymDictionary:
        return cls()

    @property
    def rule_count(self) -> int:
        return len(self.groups)

    @property
    def term_count(self) -> int:
        return len(self.index)

    def __contains__(self, term: object) -> bool:
        return isinstance(term, str) and _normalize(term) in self.index

    def lookup(self, term: str) -> tuple[str, ...]:
        """Return the synonyms for ``term``, or ``()`` when it has none."""
        return self.index.get(_normalize(term), ())

    def expand_tokens(self, tokens: Iterable[str]) -> list[tuple[str, ...]]:
        """Map each token to its synonyms, keeping tokens that have none."""
        return [self.lookup(token) or (token,) for token in tokens]


class _RuleSyntaxError(ValueError):
    pass


# ---------------------------------------------------------------------------
# Solr grammar
# ---------------------------------------------------------------------------


def _split(text: str, separator: str) -> list[str]:
    """Split on ``separator``, leaving backslash-escaped characters intact."""
    parts: list[str] = []
    buf: list[str] = []
    i = 0
    while i < len(text):
        if text[i] == "\\" and i + 1 < len(text):
            buf.append(text[i : i + 2])
            i += 2
        elif text.startswith(separator, i):
            parts.append("".join(buf))
            buf = []
            i += len(separator)
        else:
            buf.append(text[i])
            i += 1
    parts.append("".join(buf))
    return parts


def _normalize(term: str) -> str:
    return " ".join(term.split())


def _terms(side: str) -> tuple[str, ...]:
    terms = [_normalize(_ESCAPE_RE.sub(r"\1", piece)) for piece in _split(side, ",")]
    if any(not term for term in terms):
        raise _RuleSyntaxError("empty term")
    return tuple(dict.fromkeys(terms))


def _parse_solr(rule: SynonymRule) -> SynonymGroup:
    sides = _split(rule.text, "=>")
    if len(sides) > 2:
        raise _RuleSyntaxError("more than one '=>'")
    if len(sides) == 2:
        return SynonymGroup(
            rule=rule, inputs=_terms(sides[0]), outputs=_terms(sides[1]), explicit=True
        )

    terms = _terms(rule.text)
    if len(terms) < 2:
        raise _RuleSyntaxError("equivalence group needs at least two terms")
    outputs = terms if rule.expand else terms[:1]
    return SynonymGroup(rule=rule, inputs=terms, outputs=outputs)


# ---------------------------------------------------------------------------
# WordNet grammar
# ---------------------------------------------------------------------------


def _synset_group(lines: list[str], words: list[str], options: SynonymRule) -> SynonymGroup | None:
    terms = tuple(dict.fromkeys(words))
    if len(terms) < 2:
        return None
    rule = options.model_copy(update={"text": "\n".join(lines)})
    return SynonymGroup(rule=rule, inputs=terms, outputs=terms if rule.expand else terms[:1])


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------


def _rule_lines(entries: Iterable[RawEntry]) -> Iterable[tuple[int, str]]:
    """Yield ``(line_number, line)`` for every non-blank, non-comment line."""
    number = 0
    for entry in entries:
        for raw in entry.text.splitlines():
            number += 1
            line = raw.strip()
            if line and not line.startswith("#"):
                yield number, line


def _reject(number: int, line: str, reason: str, lenient: bool) -> None:
    if not lenient:
        raise MalformedRuleError(number, line, reason)
    log.warning("synonym_rule_skipped", line_number=number, line=line, reason=reason)


def _index(groups: Sequence[SynonymGroup]) -> Mapping[str, tuple[str, ...]]:
    merged: dict[str, dict[str, None]] = {}
    for group in groups:
        for term in group.inputs:
            merged.setdefault(term, {}).update(dict.fromkeys(group.outputs))
    return MappingProxyType({term: tuple(outputs) for term, outputs in merged.items()})


def build_dictionary(
    entries: Iterable[RawEntry],
    *,
    format: RuleFormat = RuleFormat.SOLR,
    expand: bool = True,
    lenient: bool = False,
) -> SynonymDictionary:
    """Parse every entry and return a new dictionary.

    Raises:
        MalformedRuleError: a line does not parse and ``lenient`` is False.
    """
    options = SynonymRule(text="", format=format, expand=expand, lenient=lenient)
    groups: list[SynonymGroup] = []

    if format == RuleFormat.SOLR:
        for number, line in _rule_lines(entries):
            try:
                groups.append(_parse_solr(options.model_copy(update={"text": line})))
            except _RuleSyntaxError as exc:
                _reject(number, line, str(exc), lenient)
    else:
        synset_id: str | None = None
        synset_lines: list[str] = []
        words: list[str] = []
        for number, line in _rule_lines(entries):
            match = _WORDNET_RE.match(line)
            if match is None:
                _reject(number, line, "not a wordnet s(...) fact", lenient)
                continue
            if match.group(1) != synset_id:
                group = _synset_group(synset_lines, words, options)
                if group is not None:
                    groups.append(group)
                synset_id, synset_lines, words = match.group(1), [], []
            synset_lines.append(line)
            word = _normalize(match.group(2).replace("''", "'"))
            if word:
                words.append(word)
        group = _synset_group(synset_lines, words, options)
        if group is not None:
            groups.append(group)

    return SynonymDictionary(groups=tuple(groups), index=_index(groups))


class DictionaryBuilder:
    """Holds the parse options for one logical source."""

    def __init__(
        self,
        format: RuleFormat = RuleFormat.SOLR,
        expand: bool = True,
        lenient: bool = False,
    ) -> None:
        self.format = format
        self.expand = expand
        self.lenient = lenient

    @classmethod
    def from_settings(cls, settings: ReloadSettings) -> DictionaryBuilder:
        return cls(format=settings.format, expand=settings.expand, lenient=settings.lenient)

    def build(self, entries: Iterable[RawEntry]) -> SynonymDictionary:
        return build_dictionary(
            entries, format=self.format, expand=self.expand, lenient=self.lenient
        )
