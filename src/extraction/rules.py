"""
Certificate rule table.

One CertificateRule per supported certificate type holds everything the
extraction and validation engines need to know about that type: detection
keywords, name layouts, certificate-number shape, score specifications,
aggregate derivation, accepted date formats, required fields and issuing
organizations. The matching and scoring code is written once and
parameterized by this table.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple


class CertificateType(str, Enum):
    """Supported certificate types, in tie-break priority order."""

    IELTS = "IELTS"
    TOEFL = "TOEFL"
    TOEIC = "TOEIC"
    VSTEP = "VSTEP"
    HSK = "HSK"
    JLPT = "JLPT"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["CertificateType"]:
        """Case-insensitive lookup; unknown or empty values give None."""
        if isinstance(value, cls):
            return value
        if not value:
            return None
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return None


class AggregateMethod(Enum):
    """How an overall score is derived from individual skills."""

    MEAN_HALF = "mean_half"  # mean rounded to the nearest 0.5
    SUM = "sum"


@dataclass(frozen=True)
class Keyword:
    """
    Detection keyword.

    Attributes:
        text: Phrase, or a regular expression when ``regex`` is True
        weight: Points added when the keyword matches
        regex: Treat ``text`` as a regular expression (no fuzzy matching)
    """

    text: str
    weight: float
    regex: bool = False


@dataclass(frozen=True)
class ScoreSpec:
    """
    One score field.

    Attributes:
        skill: Key in ExtractionResult.scores
        labels: Regex alternatives for the printed label
        minimum: Lowest valid value
        maximum: Highest valid value
        step: Valid increment (e.g., 0.5 for band scores), None for any
    """

    skill: str
    labels: Tuple[str, ...]
    minimum: float
    maximum: float
    step: Optional[float] = None

    def clamp(self, value: float) -> float:
        return float(min(self.maximum, max(self.minimum, value)))

    def in_range(self, value: float) -> bool:
        return self.minimum <= value <= self.maximum


@dataclass(frozen=True)
class CertificateRule:
    """Everything type-specific about one certificate type."""

    certificate_type: CertificateType
    keywords: Tuple[Keyword, ...]
    skills: Tuple[ScoreSpec, ...]
    aggregate: Optional[ScoreSpec] = None
    aggregate_method: Optional[AggregateMethod] = None
    min_skills_for_aggregate: int = 0
    level: Optional[ScoreSpec] = None
    level_pattern: Optional[str] = None
    name_layouts: Tuple[str, ...] = ()
    name_pattern: str = r"^[A-Z][A-Za-z\s'\-]{2,50}$"
    number_pattern: str = r"^[A-Z0-9\-]{6,20}$"
    date_formats: Tuple[str, ...] = ("DD/MM/YYYY", "YYYY-MM-DD")
    required_fields: Tuple[str, ...] = ("full_name", "certificate_number", "scores")
    organizations: Tuple[Tuple[str, str], ...] = ()

    @property
    def score_specs(self) -> Tuple[ScoreSpec, ...]:
        """Skills, aggregate and level specs, in that order."""
        specs = list(self.skills)
        if self.aggregate is not None:
            specs.append(self.aggregate)
        if self.level is not None:
            specs.append(self.level)
        return tuple(specs)

    def spec_for(self, skill: str) -> Optional[ScoreSpec]:
        for spec in self.score_specs:
            if spec.skill == skill:
                return spec
        return None


VIETNAMESE_LETTERS = "àáạảãâầấậẩẫăằắặẳẵèéẹẻẽêềếệểễìíịỉĩòóọỏõôồốộổỗơờớợởỡùúụủũưừứựửữỳýỵỷỹđ"
VIETNAMESE_UPPER = VIETNAMESE_LETTERS.upper()

# One upper-case name word, Vietnamese diacritics included
NAME_WORD = rf"[A-Z{VIETNAMESE_UPPER}][A-Z{VIETNAMESE_UPPER}'\-]*"
_NAME_WORDS = rf"{NAME_WORD}(?:[ ]{NAME_WORD})*(?![^\W\d_])"

# Family/given name layouts; groups 'family' and 'given'
_FAMILY_FIRST_LAYOUT = (
    rf"(?i:Family\s+Name)\s*:?\s*(?P<family>{_NAME_WORDS})\s*"
    rf"(?i:First\s+Name(?:\(s\))?|Given\s+Names?)\s*:?\s*(?P<given>{_NAME_WORDS})"
)
_LAST_FIRST_LAYOUT = (
    rf"(?i:Last\s+Name|Surname)\s*:?\s*(?P<family>{_NAME_WORDS})\s*"
    rf"(?i:First\s+Name|Given\s+Names?)\s*:?\s*(?P<given>{_NAME_WORDS})"
)
_VIETNAMESE_NAME_PATTERN = (
    rf"^[A-Z{VIETNAMESE_UPPER}][A-Za-z{VIETNAMESE_LETTERS}{VIETNAMESE_UPPER}\s'\-]{{2,50}}$"
)

RULES: Dict[CertificateType, CertificateRule] = {
    CertificateType.IELTS: CertificateRule(
        certificate_type=CertificateType.IELTS,
        keywords=(
            Keyword("IELTS", 15),
            Keyword("International English Language Testing System", 15),
            Keyword("Test Report Form", 10),
            Keyword("Overall Band Score", 10),
            Keyword(r"\b(?:British Council|IDP)\b", 5, regex=True),
        ),
        skills=(
            ScoreSpec("listening", (r"Listening", r"L", r"Nghe"), 0, 9, 0.5),
            ScoreSpec("reading", (r"Reading", r"R", r"Đọc"), 0, 9, 0.5),
            ScoreSpec("writing", (r"Writing", r"W", r"Viết"), 0, 9, 0.5),
            ScoreSpec("speaking", (r"Speaking", r"S", r"Nói"), 0, 9, 0.5),
        ),
        aggregate=ScoreSpec(
            "overall",
            (r"Overall\s+Band\s+Score", r"Overall\s+Band", r"Band\s+Score", r"Overall", r"Band"),
            0,
            9,
            0.5,
        ),
        aggregate_method=AggregateMethod.MEAN_HALF,
        min_skills_for_aggregate=3,
        name_layouts=(_FAMILY_FIRST_LAYOUT,),
        number_pattern=r"^[A-Z0-9]{6,20}$",
        organizations=(
            (r"British\s+Council", "British Council"),
            (r"\bIDP\b(?:\s+Education)?", "IDP Education"),
            (r"Cambridge(?:\s+(?:Assessment|English|University))*", "Cambridge Assessment English"),
        ),
    ),
    CertificateType.TOEFL: CertificateRule(
        certificate_type=CertificateType.TOEFL,
        keywords=(
            Keyword("TOEFL", 15),
            Keyword("Test of English as a Foreign Language", 15),
            Keyword(r"\biBT\b", 8, regex=True),
            Keyword(r"\bETS\b", 5, regex=True),
        ),
        skills=(
            ScoreSpec("reading", (r"Reading",), 0, 30, 1),
            ScoreSpec("listening", (r"Listening",), 0, 30, 1),
            ScoreSpec("speaking", (r"Speaking",), 0, 30, 1),
            ScoreSpec("writing", (r"Writing",), 0, 30, 1),
        ),
        aggregate=ScoreSpec("total", (r"Total\s+Score", r"Total"), 0, 120, 1),
        aggregate_method=AggregateMethod.SUM,
        min_skills_for_aggregate=4,
        name_layouts=(_LAST_FIRST_LAYOUT, _FAMILY_FIRST_LAYOUT),
        organizations=(
            (r"Educational\s+Testing\s+Service|\bETS\b", "ETS"),
        ),
    ),
    CertificateType.TOEIC: CertificateRule(
        certificate_type=CertificateType.TOEIC,
        keywords=(
            Keyword("TOEIC", 15),
            Keyword("Test of English for International Communication", 15),
            Keyword("Listening and Reading", 8),
            Keyword(r"\b(?:ETS|IIG)\b", 5, regex=True),
        ),
        skills=(
            ScoreSpec("listening", (r"Listening(?:\s+Score)?", r"LC"), 5, 495, 5),
            ScoreSpec("reading", (r"Reading(?:\s+Score)?", r"RC"), 5, 495, 5),
        ),
        aggregate=ScoreSpec("total", (r"Total\s+Score", r"Total"), 10, 990, 5),
        aggregate_method=AggregateMethod.SUM,
        min_skills_for_aggregate=2,
        name_layouts=(_LAST_FIRST_LAYOUT, _FAMILY_FIRST_LAYOUT),
        organizations=(
            (r"Educational\s+Testing\s+Service|\bETS\b", "ETS"),
            (r"\bIIG\b(?:\s+Vi[eệ]t\s*Nam)?", "IIG Vietnam"),
        ),
    ),
    CertificateType.VSTEP: CertificateRule(
        certificate_type=CertificateType.VSTEP,
        keywords=(
            Keyword("VSTEP", 12),
            Keyword("Vietnamese Standardized Test of English Proficiency", 12),
            Keyword("Bộ Giáo dục", 12),
            Keyword("Ministry of Education", 12),
            Keyword("Khung năng lực ngoại ngữ", 8),
        ),
        skills=(
            ScoreSpec("listening", (r"Listening", r"Nghe"), 0, 10, 0.5),
            ScoreSpec("reading", (r"Reading", r"Đọc"), 0, 10, 0.5),
            ScoreSpec("writing", (r"Writing", r"Viết"), 0, 10, 0.5),
            ScoreSpec("speaking", (r"Speaking", r"Nói"), 0, 10, 0.5),
        ),
        aggregate=ScoreSpec(
            "overall",
            (r"Overall(?:\s+Score)?", r"Average", r"Điểm\s+trung\s+bình", r"Tổng\s+điểm"),
            0,
            10,
            0.5,
        ),
        aggregate_method=AggregateMethod.MEAN_HALF,
        min_skills_for_aggregate=3,
        name_pattern=_VIETNAMESE_NAME_PATTERN,
        organizations=(
            (r"Bộ\s+Giáo\s+dục\s+và\s+Đào\s+tạo", "Bộ Giáo dục và Đào tạo"),
            (r"Ministry\s+of\s+Education(?:\s+and\s+Training)?", "Ministry of Education and Training"),
        ),
    ),
    CertificateType.HSK: CertificateRule(
        certificate_type=CertificateType.HSK,
        keywords=(
            Keyword("HSK", 10),
            Keyword("Hanyu Shuiping Kaoshi", 10),
            Keyword("Chinese Proficiency Test", 10),
            Keyword("Confucius Institute", 10),
            Keyword("汉语水平考试", 10),
        ),
        skills=(
            ScoreSpec("listening", (r"Listening", r"听力"), 0, 100, 1),
            ScoreSpec("reading", (r"Reading", r"阅读"), 0, 100, 1),
            ScoreSpec("writing", (r"Writing", r"书写"), 0, 100, 1),
        ),
        aggregate=ScoreSpec("total", (r"Total(?:\s+Score)?", r"总分"), 0, 300, 1),
        aggregate_method=AggregateMethod.SUM,
        min_skills_for_aggregate=2,
        level=ScoreSpec("level", (), 1, 6, 1),
        level_pattern=r"\bHSK\s*(?:Level\s*)?([1-6])\b|(?i:Level)\s*:?\s*([1-6])\b",
        organizations=(
            (r"Center\s+for\s+Language\s+Education\s+and\s+Cooperation", "Center for Language Education and Cooperation"),
            (r"\bHanban\b", "Hanban"),
            (r"Confucius\s+Institute", "Confucius Institute"),
        ),
    ),
    CertificateType.JLPT: CertificateRule(
        certificate_type=CertificateType.JLPT,
        keywords=(
            Keyword("JLPT", 10),
            Keyword("Japanese Language Proficiency Test", 10),
            Keyword("Japan Foundation", 10),
            Keyword("日本語能力試験", 10),
            Keyword(r"\bN[1-5]\b", 5, regex=True),
        ),
        skills=(
            ScoreSpec(
                "language_knowledge",
                (r"Language\s+Knowledge(?:\s*\([^)\n]*\))?", r"Vocabulary\s*/\s*Grammar"),
                0,
                120,
                1,
            ),
            ScoreSpec("reading", (r"Reading",), 0, 60, 1),
            ScoreSpec("listening", (r"Listening",), 0, 60, 1),
        ),
        aggregate=ScoreSpec("total", (r"Total\s+Score", r"Total"), 0, 180, 1),
        aggregate_method=AggregateMethod.SUM,
        min_skills_for_aggregate=3,
        level=ScoreSpec("level", (), 1, 5, 1),
        level_pattern=r"\bN\s?([1-5])\b",
        organizations=(
            (r"Japan\s+Foundation", "The Japan Foundation"),
            (r"Japan\s+Educational\s+Exchanges\s+and\s+Services", "Japan Educational Exchanges and Services"),
        ),
    ),
}

TYPE_PRIORITY: Tuple[CertificateType, ...] = tuple(CertificateType)

# Scores on certificates with no recognized type
GENERIC_SCORE = ScoreSpec("total", (r"Total(?:\s+Score)?", r"Score", r"Điểm"), 0, 1000)

# Fields every certificate is expected to carry
DEFAULT_REQUIRED_FIELDS = ("full_name", "certificate_number", "scores")


def get_rule(certificate_type: Optional[CertificateType]) -> Optional[CertificateRule]:
    if certificate_type is None:
        return None
    return RULES.get(CertificateType.parse(certificate_type))
