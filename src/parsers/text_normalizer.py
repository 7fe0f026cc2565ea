import logging
import re
import unicodedata
from dataclasses import dataclass

from config.taxonomy import fold

logger = logging.getLogger(__name__)

SUPPORTED_LANGUAGES = ("en", "es")
UNKNOWN_LANGUAGE = "unknown"

# A run of at least this many single characters separated by single spaces is
# OCR letter spacing ("E X P E R I E N C E") and gets rejoined
LETTER_SPACING_MIN_RUN = 4

STOP_WORDS = {
    "en": {
        "the", "and", "with", "for", "of", "in", "to", "is", "are", "we", "our",
        "experience", "skills", "developer", "engineer", "years", "required",
        "looking", "need", "hiring", "worked", "team", "from", "at", "as",
    },
    "es": {
        "el", "la", "los", "las", "de", "del", "y", "con", "para", "en", "por",
        "un", "una", "que", "experiencia", "habilidades", "desarrollador",
        "desarrolladora", "ingeniero", "anos", "requerido", "buscamos",
        "necesitamos", "contratando", "avanzado", "conocimientos", "equipo",
    },
}

_LETTER_RUN = re.compile(
    r"(?<!\S)((?:[^\W_]|[&+#]) ){%d,}(?:[^\W_]|[&+#])(?!\S)" % (LETTER_SPACING_MIN_RUN - 1)
)
KNOWN_TLDS = {"com", "net", "org", "edu", "gov", "info", "dev", "es", "mx", "ar", "uk", "de", "fr", "it"}
_SPLIT_EMAIL_DOMAIN = re.compile(r"(@[A-Za-z0-9.-]+)\.([A-Za-z]{1,3}) ([A-Za-z]{1,3})\b")
_CONTROL = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_WORD = re.compile(r"[a-z]+")


@dataclass(frozen=True)
class NormalizedText:
    text: str
    language: str


def _rejoin_letter_spacing(line: str) -> str:
    # Words inside a letter-spaced header are separated by 2+ spaces
    chunks = re.split(r"(\s{2,})", line)
    rebuilt = []
    for chunk in chunks:
        if chunk.isspace():
            rebuilt.append(chunk)
        else:
            rebuilt.append(_LETTER_RUN.sub(lambda m: m.group(0).replace(" ", ""), chunk))
    return "".join(rebuilt)


def _clean(text: str) -> str:
    text = unicodedata.normalize("NFC", text)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _CONTROL.sub(" ", text).replace("\t", " ")

    lines = [_rejoin_letter_spacing(line) for line in text.split("\n")]
    lines = [re.sub(r"[  ]+", " ", line).strip() for line in lines]
    text = "\n".join(lines)
    text = re.sub(r"\n{3,}", "\n\n", text)
    text = _SPLIT_EMAIL_DOMAIN.sub(_join_domain, text)
    return text.strip()


def _join_domain(match):
    # Only glue "gmail.c om" style splits, never an address followed by a word
    tld = match.group(2) + match.group(3)
    if tld.lower() not in KNOWN_TLDS:
        return match.group(0)
    return f"{match.group(1)}.{tld}"


def detect_language(text: str) -> str:
    """Stop-word scoring; ties between languages default to English."""
    words = _WORD.findall(fold(text))
    if not words:
        return UNKNOWN_LANGUAGE
    scores = {lang: sum(1 for w in words if w in STOP_WORDS[lang]) for lang in SUPPORTED_LANGUAGES}
    best = max(scores.values())
    if best == 0:
        return UNKNOWN_LANGUAGE
    if scores["es"] > scores["en"]:
        return "es"
    return "en"


def normalize(raw_text, language_hint=None) -> NormalizedText:
    """
    Clean raw chat / resume text and tag its language.

    Never raises: malformed input yields the trimmed input and "unknown".
    """
    if not isinstance(raw_text, str):
        raw_text = ""
    try:
        text = _clean(raw_text)
        hint = (language_hint or "").strip().lower()[:2]
        language = hint if hint in SUPPORTED_LANGUAGES else detect_language(text)
        if not text:
            language = UNKNOWN_LANGUAGE
        return NormalizedText(text=text, language=language)
    except Exception:
        logger.exception("Normalization failed, returning trimmed input")
        return NormalizedText(text=raw_text.strip(), language=UNKNOWN_LANGUAGE)
