from pathlib import Path
from typing import Dict, Iterable, List, Optional
import json
import re
import unicodedata

from utils.errors import TaxonomyError


DEFAULT_TAXONOMY_PATH = Path(__file__).resolve().parent / "skill_taxonomy.json"

SKILL_CATEGORIES = (
    "programming_languages",
    "web_technologies",
    "databases",
    "cloud_devops",
    "soft_skills",
    "tools_frameworks",
)


def strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def fold(text: str) -> str:
    """Case- and diacritic-insensitive form used for every lookup."""
    return re.sub(r"\s+", " ", strip_accents(text or "").lower()).strip()


def _phrase_pattern(form: str) -> str:
    return r"\s+".join(re.escape(part) for part in form.split())


class SkillTaxonomy:
    """
    Canonical skills, their category and the surface forms that name them.

    Surface forms of every language are active at once since resumes freely
    mix English tool names into Spanish prose. Category markers such as
    "bases de datos" are recognised so they are consumed, but never reported
    as skills. Ambiguous short names (Go, R, C, Swift...) only match in
    their exact capitalisation.
    """

    def __init__(self, entries: Iterable[dict], category_markers: Optional[Dict[str, List[str]]] = None):
        self._category: Dict[str, str] = {}
        self._surface: Dict[str, Optional[str]] = {}
        self._case_sensitive: Dict[str, str] = {}
        self._lookup: Dict[str, str] = {}

        for item in entries:
            if not isinstance(item, dict) or not item.get("Skill"):
                continue
            canonical = item["Skill"].strip()
            category = item.get("Category", "tools_frameworks")
            if category not in SKILL_CATEGORIES:
                raise TaxonomyError(f"Unknown category '{category}' for skill '{canonical}'")
            self._category[canonical] = category

            exact_forms = item.get("CaseSensitive", [])
            for form in exact_forms:
                self._case_sensitive[form] = canonical
                self._lookup[fold(form)] = canonical
            if canonical not in exact_forms:
                self._surface[fold(canonical)] = canonical
            for forms in (item.get("Synonyms") or {}).values():
                for form in forms:
                    self._surface[fold(form)] = canonical

        for forms in (category_markers or {}).values():
            for form in forms:
                self._surface.setdefault(fold(form), None)

        for form, canonical in self._surface.items():
            if canonical:
                self._lookup[form] = canonical

        self._pattern = self._compile(
            sorted(self._surface, key=len, reverse=True),
            r"(?<![a-z0-9])(?:{alts})(?![a-z0-9+#])",
        )
        self._case_pattern = self._compile(
            sorted(self._case_sensitive, key=len, reverse=True),
            r"(?<![A-Za-z0-9.\-])(?:{alts})(?![A-Za-z0-9+#])",
            single_letter_guard=True,
        )

    @staticmethod
    def _compile(forms, template, single_letter_guard=False):
        if not forms:
            return None
        alts = []
        for form in forms:
            pattern = _phrase_pattern(form)
            # "C." or "R-" are initials and list markers far more often than languages
            if single_letter_guard and len(form) == 1:
                pattern += r"(?![.\-'’])"
            alts.append(pattern)
        return re.compile(template.format(alts="|".join(alts)))

    @classmethod
    def from_file(cls, path=None) -> "SkillTaxonomy":
        p = Path(path) if path else DEFAULT_TAXONOMY_PATH
        try:
            data = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise TaxonomyError(f"Could not load skill taxonomy from {p}: {e}") from e
        if not isinstance(data, dict) or not isinstance(data.get("skills"), list):
            raise TaxonomyError(f"Skill taxonomy at {p} has no 'skills' list")
        return cls(data["skills"], data.get("category_markers"))

    def __len__(self):
        return len(self._category)

    def __contains__(self, skill):
        return self.canonical(skill) in self._category

    @property
    def skills(self) -> List[str]:
        return sorted(self._category)

    def category_of(self, skill: str) -> Optional[str]:
        return self._category.get(self.canonical(skill))

    def canonical(self, name: str) -> str:
        """Canonical spelling of a known skill, or the trimmed input."""
        name = (name or "").strip()
        if name in self._case_sensitive:
            return self._case_sensitive[name]
        return self._lookup.get(fold(name), name)

    def find(self, text: str) -> List[str]:
        """Canonical skills named in ``text``, in order of first appearance."""
        if not text:
            return []
        hits = []
        plain = strip_accents(text)
        if self._pattern is not None:
            for m in self._pattern.finditer(plain.lower()):
                canonical = self._surface.get(fold(m.group(0)))
                if canonical:
                    hits.append((m.start(), canonical))
        if self._case_pattern is not None:
            for m in self._case_pattern.finditer(plain):
                hits.append((m.start(), self._case_sensitive[m.group(0)]))

        found = []
        for _, canonical in sorted(hits, key=lambda h: h[0]):
            if canonical not in found:
                found.append(canonical)
        return found
