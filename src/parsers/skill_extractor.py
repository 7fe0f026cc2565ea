import logging
import re
from typing import Dict, Iterable, List, Optional

from config.taxonomy import SkillTaxonomy, fold
from models.extraction_model import (
    ContactInfo,
    ExtractionMethod,
    ExtractionResult,
    Seniority,
    SkillCategories,
)

logger = logging.getLogger(__name__)


# ================== CONFIDENCE ==================

# Number of distinct skills a resume-length document is expected to show
EXPECTED_SKILL_COVERAGE = 10

SKILL_COVERAGE_WEIGHT = 0.6
METHOD_WEIGHT = 0.4

METHOD_RELIABILITY = {
    ExtractionMethod.DICTIONARY: 1.0,
    ExtractionMethod.HYBRID: 0.85,
    ExtractionMethod.GENERATIVE: 0.7,
}

# Reliability term applied when nothing was recognised, so confidence stays near 0
EMPTY_RESULT_DAMPING = 0.05


def compute_confidence(skill_count: int, method: ExtractionMethod) -> float:
    coverage = min(max(skill_count, 0) / EXPECTED_SKILL_COVERAGE, 1.0)
    reliability = METHOD_RELIABILITY[ExtractionMethod(method)]
    if skill_count <= 0:
        reliability *= EMPTY_RESULT_DAMPING
    score = SKILL_COVERAGE_WEIGHT * coverage + METHOD_WEIGHT * reliability
    return round(min(max(score, 0.0), 1.0), 4)


# ================== PATTERNS ==================

EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
PHONE_RE = re.compile(r"\+?\(?\d[\d\s().-]{7,}\d")
PHONE_LABEL_RE = re.compile(r"\b(?:phone|tel|telefono|movil|mobile|celular|cell)\b")
LOCATION_LABEL_RE = re.compile(
    r"^\s*(?:location|ubicacion|ciudad|city|address|direccion|residencia)\s*[:\-]\s*(.+)$"
)
CITY_COUNTRY_RE = re.compile(r"^[^\W\d_][^\W\d_ .'-]*(?:[ .'-]+[^\W\d_]+)*,\s*[^\W\d_]+(?:[ .'-]+[^\W\d_]+)*$")

# Words that never appear in a "City, Country" header line
LOCATION_STOP_WORDS = {
    "hello", "hi", "hey", "hola", "team", "equipo", "good", "morning", "afternoon",
    "evening", "buenos", "buenas", "dias", "tardes", "noches", "thanks", "thank",
    "gracias", "please", "everyone", "all", "guys", "folks", "we", "i", "you",
    "need", "looking", "hiring", "necesitamos", "buscamos", "an",
    "and", "with", "for", "our", "para", "con", "un", "una",
}

# Applied to folded (lower-case, accent-free) text
YEARS_PATTERNS = [
    re.compile(r"(\d{1,2})\s*\+?\s*(?:years?|yrs?|anos?)\s+(?:of\s+|de\s+)?(?:professional\s+|profesional\s+)?(?:experience|experiencia)"),
    re.compile(r"(?:experience|experiencia)\s*(?:of|de|:)?\s*(\d{1,2})\s*\+?\s*(?:years?|yrs?|anos?)"),
    re.compile(r"(\d{1,2})\s*\+\s*(?:years?|yrs?|anos?)"),
]
SKILL_YEARS_RE = re.compile(r"(\d{1,2})\s*\+?\s*(?:years?|yrs?|anos?)\b([^\n]{0,80})")

SENIORITY_PATTERNS = [
    (Seniority.LEAD, re.compile(
        r"\b(?:tech|team|technical)\s+lead\b|\blead\s+(?:developer|engineer|architect|desarrollador|desarrolladora|ingeniero)\b"
        r"|\bprincipal\s+(?:engineer|developer|architect)\b|\blider\s+tecnic[oa]\b|\bhead\s+of\b|\bstaff\s+(?:engineer|developer|architect)\b"
    )),
    (Seniority.MID, re.compile(
        r"\bsemi[\s-]?senior\b|\bmid(?:dle)?[\s-]level\b|\b(?:mid|middle)\s+(?:developer|engineer|desarrollador)\b|\bintermediate\b"
    )),
    (Seniority.SENIOR, re.compile(r"\bsenior\b|\bsr\b")),
    (Seniority.JUNIOR, re.compile(r"\bjunior\b|\bjr\b|\bentry[\s-]level\b")),
    (Seniority.INTERN, re.compile(r"\bintern(?:ship)?\b|\btrainee\b|\bbecari[oa]\b|\bpracticante\b")),
]

# Years of experience -> level, used only when no explicit keyword exists
SENIORITY_BY_YEARS = [
    (8, Seniority.SENIOR),
    (3, Seniority.MID),
    (1, Seniority.JUNIOR),
]

ROLE_WORDS = {
    "developer", "engineer", "manager", "analyst", "architect", "designer",
    "consultant", "scientist", "administrator", "lead", "programmer",
    "desarrollador", "desarrolladora", "ingeniero", "ingeniera", "analista",
    "arquitecto", "disenador", "programador", "programadora", "consultor",
}
SECTION_WORDS = {
    "resume", "curriculum", "cv", "profile", "summary", "experience",
    "education", "skills", "contact", "perfil", "resumen", "experiencia",
    "educacion", "habilidades", "contacto", "objetivo", "objective",
}
NAME_PARTICLES = {"de", "del", "la", "las", "los", "da", "van", "von", "y"}

EXPERIENCE_SECTION_RE = re.compile(r"\b(?:experience|experiencia|employment|work history|trayectoria)\b")
SECTION_END_RE = re.compile(r"\b(?:education|educacion|skills|habilidades|certifications|certificaciones|formacion)\b")
SUMMARY_SECTION_RE = re.compile(r"^(?:summary|profile|about me|about|perfil|resumen|sobre mi)\s*:?\s*(.*)$")
PROJECT_QUOTED_RE = re.compile(r"[\"“]([^\"”]{4,99})[\"”]")
PROJECT_NOUN_RE = re.compile(
    r"\b((?:[A-Z][\w-]+\s+){0,2}(?:Platform|Portal|Application|App|System|Service|Plataforma|Sistema))\b"
)

EDUCATION_KEYWORDS = [
    "bachelor", "master", "phd", "doctorate", "degree", "diploma", "certification",
    "licenciatura", "maestria", "doctorado", "grado", "certificacion", "ingenieria",
]


class SkillExtractor:
    """
    Dictionary-based entity extractor.

    Pure computation: no I/O, no shared mutable state, and it never raises on
    malformed input. An empty or unrecognisable text yields an empty result
    with confidence close to zero.
    """

    def __init__(self, taxonomy: SkillTaxonomy):
        self.taxonomy = taxonomy

    # -----------------------------
    # Public API
    # -----------------------------
    def extract(self, text: str, language: str = "unknown") -> ExtractionResult:
        try:
            return self._extract(text or "", language)
        except Exception:
            logger.exception("Extraction failed, returning an empty result")
            return self.empty_result(language)

    def empty_result(self, language: str = "unknown") -> ExtractionResult:
        return ExtractionResult(
            language=language,
            confidence=compute_confidence(0, ExtractionMethod.DICTIONARY),
        )

    def with_generative_skills(self, result: ExtractionResult, skill_names: Iterable[str]) -> ExtractionResult:
        """Fold skills proposed by the generative fallback into a result."""
        known = set(result.all_skills())
        categories = result.skills.model_dump()
        added = 0
        for name in skill_names:
            if not isinstance(name, str) or not name.strip():
                continue
            canonical = self.taxonomy.canonical(name)
            if canonical in known:
                continue
            category = self.taxonomy.category_of(canonical) or "tools_frameworks"
            categories[category].append(canonical)
            known.add(canonical)
            added += 1

        if not added:
            return result
        method = ExtractionMethod.HYBRID if result.total_skills_found else ExtractionMethod.GENERATIVE
        skills = SkillCategories(**categories)
        return result.model_copy(update={
            "skills": skills,
            "extraction_method": method,
            "confidence": compute_confidence(len(set(skills.all())), method),
        })

    # -----------------------------
    # Extraction steps
    # -----------------------------
    def _extract(self, text: str, language: str) -> ExtractionResult:
        folded = fold_lines(text)
        lines = [line.strip() for line in text.split("\n")]
        folded_lines = folded.split("\n")

        found = self.taxonomy.find(text)
        categories = {}
        for skill in found:
            categories.setdefault(self.taxonomy.category_of(skill), []).append(skill)
        skills = SkillCategories(**{k: v for k, v in categories.items() if k})

        years = self._years_of_experience(folded)
        seniority = self._seniority(folded, years)

        return ExtractionResult(
            candidate_name=self._name(lines),
            contact=ContactInfo(
                email=self._email(text),
                phone=self._phone(lines, folded_lines),
                location=self._location(lines, folded_lines),
            ),
            skills=skills,
            skill_years=self._skill_years(folded),
            years_experience=years,
            seniority=seniority,
            current_position=self._position(lines),
            current_project=self._project(lines, folded_lines),
            education=[k for k in EDUCATION_KEYWORDS if re.search(rf"\b{k}\b", folded)],
            summary=self._summary(lines, folded_lines),
            language=language,
            confidence=compute_confidence(len(found), ExtractionMethod.DICTIONARY),
            extraction_method=ExtractionMethod.DICTIONARY,
        )

    def _email(self, text: str) -> Optional[str]:
        match = EMAIL_RE.search(text)
        if not match:
            return None
        return match.group(0).strip(",.;:()[]").lower()

    def _phone(self, lines: List[str], folded_lines: List[str]) -> Optional[str]:
        for line, low in zip(lines, folded_lines):
            if "@" in line:
                line = EMAIL_RE.sub(" ", line)
            for match in PHONE_RE.finditer(line):
                candidate = match.group(0).strip()
                digits = re.sub(r"\D", "", candidate)
                if len(digits) < 9 or len(digits) > 15:
                    continue
                if candidate.startswith("+") or PHONE_LABEL_RE.search(low):
                    return candidate
        return None

    def _location(self, lines: List[str], folded_lines: List[str]) -> Optional[str]:
        for line, low in zip(lines, folded_lines):
            if LOCATION_LABEL_RE.match(low):
                value = line.split(":", 1)[-1] if ":" in line else line.split("-", 1)[-1]
                value = value.strip()
                if value:
                    return value
        for line in _header(lines):
            if self._looks_like_place(line):
                return line
        return None

    def _looks_like_place(self, line: str) -> bool:
        if not CITY_COUNTRY_RE.match(line) or self._looks_like_role(line):
            return False
        words = re.findall(r"[^\W\d_]+", line)
        if {fold(w) for w in words} & LOCATION_STOP_WORDS:
            return False
        return all(w[0].isupper() or fold(w) in NAME_PARTICLES for w in words)

    def _name(self, lines: List[str]) -> Optional[str]:
        for line in _header(lines, size=5):
            if not line or "@" in line or ":" in line or any(ch.isdigit() for ch in line):
                continue
            words = line.replace(",", " ").split()
            if not 2 <= len(words) <= 4:
                continue
            low_words = {fold(w) for w in words}
            if low_words & SECTION_WORDS or self._looks_like_role(line):
                continue
            if all(w[0].isupper() or fold(w) in NAME_PARTICLES for w in words) and words[0][0].isupper():
                return line.title() if line.isupper() else line
        return None

    def _looks_like_role(self, line: str) -> bool:
        words = set(re.findall(r"[a-z]+", fold(line)))
        if words & ROLE_WORDS:
            return True
        if any(p.search(fold(line)) for _, p in SENIORITY_PATTERNS):
            return True
        return bool(self.taxonomy.find(line))

    def _position(self, lines: List[str]) -> Optional[str]:
        for line in _header(lines, size=6):
            if "@" in line:
                continue
            if set(re.findall(r"[a-z]+", fold(line))) & ROLE_WORDS:
                return re.split(r"[,|(]| - ", line)[0].strip()[:80] or None
        return None

    def _years_of_experience(self, folded: str) -> Optional[float]:
        values = []
        for pattern in YEARS_PATTERNS:
            values.extend(int(m.group(1)) for m in pattern.finditer(folded))
        values = [v for v in values if 0 < v <= 60]
        return float(max(values)) if values else None

    def _skill_years(self, folded: str) -> Dict[str, float]:
        years: Dict[str, float] = {}
        for match in SKILL_YEARS_RE.finditer(folded):
            value = float(match.group(1))
            if not 0 < value <= 60:
                continue
            for skill in self.taxonomy.find(match.group(2)):
                years[skill] = max(years.get(skill, 0.0), value)
        return years

    def _seniority(self, folded: str, years: Optional[float]) -> Optional[Seniority]:
        earliest = None
        for level, pattern in SENIORITY_PATTERNS:
            match = pattern.search(folded)
            if match and (earliest is None or match.start() < earliest[0]):
                earliest = (match.start(), level)
        if earliest:
            return earliest[1]
        if years is not None:
            for threshold, level in SENIORITY_BY_YEARS:
                if years >= threshold:
                    return level
        return None

    def _project(self, lines: List[str], folded_lines: List[str]) -> Optional[str]:
        in_experience = False
        for line, low in zip(lines, folded_lines):
            if not line:
                continue
            if not in_experience:
                in_experience = bool(EXPERIENCE_SECTION_RE.search(low)) and len(low.split()) <= 4
                continue
            if SECTION_END_RE.search(low) and len(low.split()) <= 4:
                break
            quoted = PROJECT_QUOTED_RE.search(line)
            if quoted:
                return quoted.group(1).strip()
            noun = PROJECT_NOUN_RE.search(line)
            if noun:
                return noun.group(1).strip()
        return None

    def _summary(self, lines: List[str], folded_lines: List[str]) -> Optional[str]:
        for i, low in enumerate(folded_lines):
            match = SUMMARY_SECTION_RE.match(low)
            if not match:
                continue
            inline = lines[i].split(":", 1)[1].strip() if ":" in lines[i] else ""
            if inline:
                return inline[:500]
            for following in lines[i + 1:]:
                if following:
                    return following[:500]
        return None


def fold_lines(text: str) -> str:
    return "\n".join(fold(line) for line in text.split("\n"))


def _header(lines: List[str], size: int = 8) -> List[str]:
    return [line for line in lines if line][:size]
