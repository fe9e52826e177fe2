"""
Field extractors.

Each extractor works on cleaned text and is parameterized by the rule
table, so the matching logic exists once for every certificate type.
"""

import logging
import math
import re
from typing import Dict, List, Optional, Sequence, Tuple

from src.extraction.rules import (
    GENERIC_SCORE,
    RULES,
    VIETNAMESE_UPPER,
    AggregateMethod,
    CertificateRule,
    CertificateType,
    ScoreSpec,
)
from src.extraction.text_cleaner import find_dates
from src.extraction.types import ExtractedDates, NameCandidate

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Names
# ═══════════════════════════════════════════════════════════════════════════

STRATEGY_LAYOUT = ("certificate-layout", 0.9)
STRATEGY_LABEL = ("name-label", 0.8)
STRATEGY_POSITIONAL = ("caps-before-date", 0.7)
STRATEGY_LOOSE = ("caps-words", 0.5)

_NAME_LABEL = re.compile(
    r"(?i:\b(?:Candidate(?:'s)?\s+Name|Full\s+Name|Name\s+of\s+Candidate|Examinee\s+Name"
    r"|Test\s+Taker\s+Name|Name|Họ\s+và\s+tên|Họ\s+tên|Ho\s+va\s+ten))"
    r"\s*:?[ \t]*([^\n]{2,60})"
)
# Labels that may follow a name on the same line
_NAME_TERMINATORS = re.compile(
    r"(?i:\b(?:Date|DOB|D\.O\.B|Born|Sex|Gender|Nationality|Candidate|Number|No\.?|ID"
    r"|Centre|Center|Ngày|Giới)\b)|\d|:"
)
_CAPS_WORD = rf"[A-Z{VIETNAMESE_UPPER}][A-Z{VIETNAMESE_UPPER}'\-]+"
_POSITIONAL_NAME = re.compile(
    rf"(?<![\w])({_CAPS_WORD}(?:[ ]{_CAPS_WORD}){{1,3}})[ \t]*\n?[ \t]*"
    r"(?=\d{1,2}/\d{1,2}/\d{4}|(?i:Date|DOB|D\.O\.B|Born|Sex|Gender|Ngày\s+sinh))"
)
_LOOSE_NAME = re.compile(rf"(?<![\w])({_CAPS_WORD}(?:[ ]{_CAPS_WORD}){{1,3}})(?![\w])")

# Upper-case words that appear on certificates but are never part of a name
NAME_STOPWORDS = frozenset(
    """
    IELTS TOEFL TOEIC VSTEP HSK JLPT IBT ETS IDP TRF CEFR TEST REPORT FORM
    CERTIFICATE CERTIFICATION ENGLISH LANGUAGE INTERNATIONAL TESTING SYSTEM
    LISTENING READING WRITING SPEAKING OVERALL BAND SCORE SCORES TOTAL RESULT
    RESULTS ACADEMIC GENERAL TRAINING CANDIDATE NAME FAMILY FIRST LAST DATE
    BIRTH NUMBER CENTRE CENTER BRITISH COUNCIL CAMBRIDGE UNIVERSITY LEVEL
    PROFICIENCY FOREIGN COMMUNICATION JAPANESE CHINESE JAPAN FOUNDATION
    MINISTRY EDUCATION OF AND THE FOR VIETNAM VIET NAM SEX MALE FEMALE
    NATIONALITY VALID ISSUED ISSUE EXAMINATION EXAM SIGNATURE ADMINISTRATOR
    """.split()
)


def name_quality(name: str) -> int:
    """
    Heuristic plausibility of a person name.

    +20 for 2-4 words, +15 when every word is 2-15 letters (or an initial),
    +15 for letters only, +10 when every word starts upper-case;
    -20 for digits, -15 for OCR artifacts ('|', '_'), -10 when longer than
    50 characters.

    Example:
        >>> name_quality("NGUYEN VAN AN")
        60
        >>> name_quality("A1 |x")
        0
    """
    words = name.split()
    score = 0

    if 2 <= len(words) <= 4:
        score += 20
    if words and all(2 <= len(w.strip(".'-")) <= 15 or re.fullmatch(r"[A-Z]\.?", w) for w in words):
        score += 15
    if words and all(re.fullmatch(r"[^\W\d_]+(?:['\-.][^\W\d_]*)*", w) for w in words):
        score += 15
    if words and all(w[0].isupper() for w in words):
        score += 10

    if re.search(r"\d", name):
        score -= 20
    if re.search(r"[|_]", name):
        score -= 15
    if len(name) > 50:
        score -= 10

    return score


def _tidy_name(raw: str) -> str:
    name = " ".join(raw.replace("\n", " ").split())
    return name.strip(" .,;:-'")


def _is_stopword_phrase(name: str) -> bool:
    return any(word.upper().strip(".'-") in NAME_STOPWORDS for word in name.split())


def _candidates(text: str, rule: Optional[CertificateRule]) -> List[NameCandidate]:
    candidates: List[NameCandidate] = []

    def add(raw: str, strategy: Tuple[str, float], check_stopwords: bool) -> None:
        name = _tidy_name(raw)
        if not name or (check_stopwords and _is_stopword_phrase(name)):
            return
        candidates.append(
            NameCandidate(
                name=name,
                strategy=strategy[0],
                strategy_confidence=strategy[1],
                quality=name_quality(name),
            )
        )

    layouts = rule.name_layouts if rule else ()
    if not layouts:
        layouts = tuple(
            layout for r in RULES.values() for layout in r.name_layouts
        )
    for layout in dict.fromkeys(layouts):
        match = re.search(layout, text)
        if match:
            add(f"{match.group('given')} {match.group('family')}", STRATEGY_LAYOUT, True)

    for match in _NAME_LABEL.finditer(text):
        value = match.group(1)
        cut = _NAME_TERMINATORS.search(value)
        if cut:
            value = value[: cut.start()]
        add(value, STRATEGY_LABEL, False)

    for match in _POSITIONAL_NAME.finditer(text):
        add(match.group(1), STRATEGY_POSITIONAL, True)

    for match in _LOOSE_NAME.finditer(text):
        add(match.group(1), STRATEGY_LOOSE, True)

    return candidates


def extract_name(
    text: str, rule: Optional[CertificateRule] = None, min_quality: int = 30
) -> Optional[NameCandidate]:
    """
    Extract the candidate's name.

    Strategies, most specific first: certificate family/first-name layout,
    "Name:" style labels, upper-case words right before a date or label,
    any run of 2-4 upper-case words. The candidate with the highest
    ``100 * strategy_confidence + name_quality`` wins; candidates with
    quality below ``min_quality`` are discarded.

    Args:
        text: Cleaned text
        rule: Rule of the detected type (None tries every known layout)
        min_quality: Minimum name_quality to accept a candidate

    Returns:
        Winning NameCandidate, or None
    """
    best: Optional[NameCandidate] = None
    for candidate in _candidates(text, rule):
        if candidate.quality < min_quality:
            continue
        if best is None or candidate.combined_score > best.combined_score:
            best = candidate

    if best is not None:
        logger.debug(
            f"Name '{best.name}' via {best.strategy} (quality {best.quality})"
        )
    return best


# ═══════════════════════════════════════════════════════════════════════════
# Dates
# ═══════════════════════════════════════════════════════════════════════════

DATE_ROLE_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "date_of_birth": (
        "birth", "born", "dob", "d.o.b", "ngày sinh", "sinh ngày", "năm sinh",
    ),
    "exam_date": (
        "test date", "date of test", "exam", "examination", "tested", "test",
        "ngày thi", "thi ngày",
    ),
    "issue_date": (
        "issue", "issued", "date of issue", "certificate date", "valid", "printed",
        "ngày cấp", "cấp ngày",
    ),
}


def _role_scores(context: str) -> Dict[str, int]:
    lowered = context.lower()
    return {
        role: sum(1 for kw in keywords if kw in lowered)
        for role, keywords in DATE_ROLE_KEYWORDS.items()
    }


def extract_dates(text: str, context_chars: int = 30) -> ExtractedDates:
    """
    Find dates and assign them to birth / exam / issue roles.

    The context inspected for each date is the text before it, limited to
    ``context_chars`` characters and never reaching back past the previous
    date. The role with the most keyword hits wins if still free; a date
    with no usable role fills the exam date if that is still empty.

    Returns:
        ExtractedDates with DD/MM/YYYY values (raw text if unparseable)
    """
    assigned: Dict[str, Optional[str]] = {role: None for role in DATE_ROLE_KEYWORDS}
    previous_end = 0

    for match in find_dates(text):
        context = text[max(previous_end, match.start - context_chars) : match.start]
        previous_end = match.end
        value = match.normalized or match.raw

        scores = _role_scores(context)
        ranked = sorted(
            (role for role in scores if scores[role] > 0),
            key=lambda role: -scores[role],
        )
        role = next((r for r in ranked if assigned[r] is None), None)
        if role is None and assigned["exam_date"] is None:
            role = "exam_date"
        if role is None:
            logger.debug(f"Unassigned date '{match.raw}'")
            continue
        assigned[role] = value

    return ExtractedDates(**assigned)


# ═══════════════════════════════════════════════════════════════════════════
# Certificate numbers
# ═══════════════════════════════════════════════════════════════════════════

_LABELLED_NUMBER = re.compile(
    r"(?i:\b(?:Test\s+Report\s+Form|TRF|Form|Certificate|Cert\.?|Registration|Candidate"
    r"|Test\s+Taker|Serial|Reference)\s*(?:Number|No\.?|ID|#)"
    r"|\bTRF\b|Số\s+hiệu|Số\s+chứng\s+chỉ|Số\s+vào\s+sổ)"
    r"\s*:?\s*([A-Za-z0-9][A-Za-z0-9\-/]{3,24})"
)
_BARE_CODE = re.compile(
    r"(?<![\w/.\-])(?=[A-Z0-9\-]*\d)(?=[A-Z0-9\-]*[A-Z])[A-Z0-9][A-Z0-9\-]{5,19}(?![\w/.\-])"
)
_BARE_DIGITS = re.compile(r"(?<![\w/.\-])\d{8,20}(?![\w/.\-])")

DEFAULT_NUMBER_PATTERN = r"^[A-Z0-9\-]{4,25}$"


def _canonical_number(raw: str) -> str:
    return raw.upper().strip("-/ ")


def extract_certificate_number(
    text: str, rule: Optional[CertificateRule] = None
) -> Optional[str]:
    """
    Extract the certificate / form number.

    Labelled numbers ("Test Report Form Number", "Certificate No.", ...)
    are tried first, then bare codes mixing letters and digits, then long
    digit runs. Every candidate must satisfy the type's number shape.
    """
    shape = re.compile(rule.number_pattern if rule else DEFAULT_NUMBER_PATTERN)

    def accept(raw: str) -> Optional[str]:
        value = _canonical_number(raw)
        return value if shape.fullmatch(value) else None

    for match in _LABELLED_NUMBER.finditer(text):
        value = accept(match.group(1))
        if value:
            logger.debug(f"Certificate number '{value}' from label")
            return value

    for pattern in (_BARE_CODE, _BARE_DIGITS):
        for match in pattern.finditer(text):
            value = accept(match.group(0))
            if value:
                logger.debug(f"Certificate number '{value}' from bare code")
                return value

    return None


# ═══════════════════════════════════════════════════════════════════════════
# Scores
# ═══════════════════════════════════════════════════════════════════════════

_NUMBER = r"(\d{1,4}(?:\.\d{1,2})?)"
_SCORE_TAIL = rf"(?:\s*(?i:score|band|points?))?\s*[:\-]?\s*{_NUMBER}(?![\d/])"


def _is_letter_label(label: str) -> bool:
    return len(label) == 1 and label.isalpha()


def _label_pattern(label: str) -> "re.Pattern":
    # Single letters ("L 7.5 | R 8.0") only count at a line start or after a delimiter
    if _is_letter_label(label):
        return re.compile(
            rf"(?:^|(?<=[|,;/]))[ \t]*{label}(?![^\W\d_]){_SCORE_TAIL}", re.MULTILINE
        )
    return re.compile(rf"(?<![^\W\d_])(?i:{label})(?![^\W\d_]){_SCORE_TAIL}")


def _skill_word_pattern(rule: CertificateRule) -> Optional["re.Pattern"]:
    labels = [
        label
        for spec in rule.skills
        for label in spec.labels
        if not _is_letter_label(label)
    ]
    if not labels:
        return None
    return re.compile(rf"(?<![^\W\d_])(?i:{'|'.join(labels)})\s*$")


def _find_score(
    text: str, spec: ScoreSpec, not_after: Optional["re.Pattern"] = None
) -> Optional[float]:
    """
    First in-range value of the most specific label.

    Labels are tried in declared order. Matches directly preceded by a
    ``not_after`` hit are ignored, so "Listening Band 6.0" never feeds
    the overall band.
    """
    for label in spec.labels:
        for match in _label_pattern(label).finditer(text):
            if not_after is not None and not_after.search(text, 0, match.start()):
                continue
            value = float(match.group(1))
            if spec.in_range(value):
                return spec.clamp(value)
    return None


def round_half(value: float) -> float:
    """Round to the nearest 0.5, halves rounding up (6.25 → 6.5, 6.75 → 7.0)."""
    return math.floor(value * 2 + 0.5) / 2


def derive_aggregate(
    scores: Dict[str, float], rule: CertificateRule
) -> Optional[float]:
    """
    Compute the aggregate from individual skills.

    Returns None when the rule has no aggregate or fewer than
    ``min_skills_for_aggregate`` skills are present.
    """
    if rule.aggregate is None or rule.aggregate_method is None:
        return None

    present = [scores[s.skill] for s in rule.skills if s.skill in scores]
    if not present or len(present) < rule.min_skills_for_aggregate:
        return None

    if rule.aggregate_method == AggregateMethod.MEAN_HALF:
        value = round_half(sum(present) / len(present))
    else:
        value = float(sum(present))
    return rule.aggregate.clamp(value)


def _find_level(text: str, rule: CertificateRule) -> Optional[float]:
    if rule.level is None or not rule.level_pattern:
        return None
    for match in re.finditer(rule.level_pattern, text):
        digit = next((g for g in match.groups() if g), None)
        if digit is not None and rule.level.in_range(float(digit)):
            return float(digit)
    return None


def extract_scores(
    text: str, certificate_type: Optional[CertificateType]
) -> Tuple[Dict[str, float], bool]:
    """
    Extract per-skill scores for a certificate type.

    Each skill takes the first in-range value of its most specific label. When
    the aggregate is missing and enough skills are present, it is derived
    (mean rounded to the nearest half band, or sum).

    Args:
        text: Cleaned text
        certificate_type: Detected type; None falls back to a generic score

    Returns:
        Tuple of (scores, aggregate_derived)
    """
    rule = RULES.get(certificate_type) if certificate_type else None
    if rule is None:
        generic = _find_score(text, GENERIC_SCORE)
        return ({GENERIC_SCORE.skill: generic} if generic is not None else {}), False

    scores: Dict[str, float] = {}
    for spec in rule.skills:
        value = _find_score(text, spec)
        if value is not None:
            scores[spec.skill] = value

    derived = False
    if rule.aggregate is not None:
        value = _find_score(
            text, rule.aggregate, not_after=_skill_word_pattern(rule)
        )
        if value is None:
            value = derive_aggregate(scores, rule)
            derived = value is not None
        if value is not None:
            scores[rule.aggregate.skill] = value

    level = _find_level(text, rule)
    if level is not None:
        scores[rule.level.skill] = level

    logger.debug(f"{rule.certificate_type.value} scores: {scores} (derived={derived})")
    return scores, derived


# ═══════════════════════════════════════════════════════════════════════════
# Issuing organization
# ═══════════════════════════════════════════════════════════════════════════

_GENERIC_ORGANIZATION = re.compile(
    r"(?i:\b(?:Issued\s+by|Issuing\s+(?:Body|Organi[sz]ation)|Organi[sz]ation|Awarded\s+by"
    r"|Đơn\s+vị\s+cấp|Nơi\s+cấp))\s*:?\s*([^\n]{3,60})"
)


def extract_organization(
    text: str, certificate_type: Optional[CertificateType] = None
) -> Optional[str]:
    """
    Find the issuing organization.

    Organizations of the detected type are tried first, then those of every
    other type, then generic "Issued by:" style labels.
    """
    ordered: Sequence[CertificateType] = list(RULES)
    if certificate_type in RULES:
        ordered = [certificate_type] + [t for t in RULES if t != certificate_type]

    for ctype in ordered:
        for pattern, canonical in RULES[ctype].organizations:
            if re.search(pattern, text, re.IGNORECASE):
                return canonical

    match = _GENERIC_ORGANIZATION.search(text)
    if match:
        value = match.group(1).strip(" .,;:")
        return value or None
    return None
