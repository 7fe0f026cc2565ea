"""Tests for the taxonomy lookup and the dictionary extractor."""

import json

import pytest

from config.taxonomy import SkillTaxonomy
from models.extraction_model import ExtractionMethod, Seniority
from parsers.skill_extractor import (
    EMPTY_RESULT_DAMPING,
    EXPECTED_SKILL_COVERAGE,
    compute_confidence,
)
from parsers.text_normalizer import normalize
from utils.errors import TaxonomyError


class TestTaxonomy:

    def test_longest_surface_form_wins(self, taxonomy):
        assert taxonomy.find("Backend with Node.js and React Native") == ["Node.js", "React Native"]

    def test_aliases_map_to_canonical_names(self, taxonomy):
        assert taxonomy.find("k8s, golang, postgres") == ["Kubernetes", "Go", "PostgreSQL"]

    def test_case_and_diacritics_are_ignored(self, taxonomy):
        assert taxonomy.find("PYTHON y Comunicación") == ["Python", "Communication"]

    def test_ambiguous_short_names_need_exact_case(self, taxonomy):
        assert "Go" in taxonomy.find("Services written in Go")
        assert taxonomy.find("we go to the office") == []

    def test_initials_are_not_the_c_language(self, taxonomy):
        assert taxonomy.find("Contact C. Smith") == []
        assert taxonomy.find("C, C++ and C#") == ["C", "C++", "C#"]

    def test_category_markers_are_not_skills(self, taxonomy):
        assert taxonomy.find("Bases de datos: MySQL") == ["MySQL"]

    def test_javascript_is_not_java(self, taxonomy):
        assert taxonomy.find("JavaScript") == ["JavaScript"]

    def test_canonical_returns_input_for_unknown_names(self, taxonomy):
        assert taxonomy.canonical("nodejs") == "Node.js"
        assert taxonomy.canonical("  Cobol ") == "Cobol"

    def test_missing_file_raises_taxonomy_error(self, tmp_path):
        with pytest.raises(TaxonomyError):
            SkillTaxonomy.from_file(tmp_path / "missing.json")

    def test_unknown_category_raises_taxonomy_error(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"skills": [{"Skill": "X", "Category": "nope"}]}))
        with pytest.raises(TaxonomyError):
            SkillTaxonomy.from_file(path)


class TestConfidence:

    def test_bounded(self):
        for method in ExtractionMethod:
            for count in range(0, 40):
                assert 0.0 <= compute_confidence(count, method) <= 1.0

    def test_non_decreasing_in_skill_count(self):
        for method in ExtractionMethod:
            values = [compute_confidence(n, method) for n in range(0, 30)]
            assert values == sorted(values)

    def test_zero_skills_is_near_zero(self):
        assert compute_confidence(0, ExtractionMethod.DICTIONARY) == pytest.approx(0.4 * EMPTY_RESULT_DAMPING)

    def test_full_coverage_dictionary_is_one(self):
        assert compute_confidence(EXPECTED_SKILL_COVERAGE, ExtractionMethod.DICTIONARY) == 1.0


class TestExtractor:

    def test_spanish_resume(self, extractor, spanish_resume):
        normalized = normalize(spanish_resume)
        result = extractor.extract(normalized.text, normalized.language)

        assert {"Python", "React", "AWS"} <= set(result.all_skills())
        assert result.language == "es"
        assert result.confidence > 0
        assert result.extraction_method == ExtractionMethod.DICTIONARY

    def test_spanish_resume_entities(self, extractor, spanish_resume):
        normalized = normalize(spanish_resume)
        result = extractor.extract(normalized.text, normalized.language)

        assert result.candidate_name == "María González"
        assert result.contact.email == "maria.gonzalez@email.com"
        assert result.contact.phone == "+34 612 345 678"
        assert result.contact.location == "Madrid, España"
        assert result.years_experience == 7
        assert result.seniority == Seniority.SENIOR
        assert result.current_position == "Desarrolladora Senior de Software"
        assert result.current_project == "Plataforma de Pagos"
        assert result.skill_years["React"] == 4
        assert "Leadership" in result.skills.soft_skills

    def test_english_resume(self, extractor, english_resume):
        normalized = normalize(english_resume)
        result = extractor.extract(normalized.text, normalized.language)

        assert result.candidate_name == "John Smith"
        assert result.contact.location == "Austin, USA"
        assert result.years_experience == 5
        # no keyword, so derived from 5 years
        assert result.seniority == Seniority.MID
        assert result.skill_years["Django"] == 3
        assert result.current_project == "Payments Platform"
        assert result.summary.startswith("Backend engineer with 5 years")
        assert result.skills.databases == ["PostgreSQL"]

    def test_job_request(self, extractor):
        text = "Senior React Developer, 5+ years, JavaScript, TypeScript, Node.js, AWS, Docker, Kubernetes, MySQL, Redis"
        result = extractor.extract(text, "en")

        assert set(result.all_skills()) == {
            "React", "JavaScript", "TypeScript", "Node.js", "AWS", "Docker", "Kubernetes", "MySQL", "Redis",
        }
        assert result.total_skills_found == 9
        assert result.seniority == Seniority.SENIOR
        assert result.years_experience == 5
        assert result.candidate_name is None

    @pytest.mark.parametrize("text, expected", [
        ("Intern at Acme", Seniority.INTERN),
        ("Becario de desarrollo", Seniority.INTERN),
        ("Junior developer", Seniority.JUNIOR),
        ("Semi senior developer", Seniority.MID),
        ("Tech lead for payments", Seniority.LEAD),
        ("Staff engineer on the data team", Seniority.LEAD),
        ("Middle developer, Python", Seniority.MID),
        ("Junior analyst, later senior engineer", Seniority.JUNIOR),
        ("12 years of experience", Seniority.SENIOR),
        ("1 year of experience", Seniority.JUNIOR),
    ])
    def test_seniority(self, extractor, text, expected):
        assert extractor.extract(text, "en").seniority == expected

    @pytest.mark.parametrize("header", [
        "Hello team, good morning",
        "Hola equipo, buenos días",
        "thanks all, see you",
    ])
    def test_greeting_is_not_a_location(self, extractor, header):
        result = extractor.extract(f"{header}\nWe need a senior Python and Django developer", "en")
        assert result.contact.location is None

    def test_city_country_header_is_a_location(self, extractor):
        result = extractor.extract("Ana Ruiz\nLos Angeles, USA\nPython", "en")
        assert result.contact.location == "Los Angeles, USA"

    def test_no_seniority_without_evidence(self, extractor):
        assert extractor.extract("Python and SQL", "en").seniority is None

    @pytest.mark.parametrize("text", ["", "   ", "hello there, how are you?", "!!!@@@###", "\x00\x01"])
    def test_no_skills_never_raises(self, extractor, text):
        result = extractor.extract(text, "unknown")
        assert result.total_skills_found == 0
        assert result.confidence < 0.05

    def test_none_text(self, extractor):
        assert extractor.extract(None).total_skills_found == 0

    def test_more_skills_never_lower_confidence(self, extractor):
        few = extractor.extract("Python", "en")
        many = extractor.extract("Python, Java, Docker, AWS, React, MySQL", "en")
        assert many.confidence >= few.confidence


class TestGenerativeMerge:

    def test_generative_only(self, extractor):
        empty = extractor.extract("no skills here", "en")
        merged = extractor.with_generative_skills(empty, ["python", "Quantum Basket Weaving"])

        assert merged.extraction_method == ExtractionMethod.GENERATIVE
        assert "Python" in merged.skills.programming_languages
        assert "Quantum Basket Weaving" in merged.skills.tools_frameworks
        assert merged.confidence > empty.confidence

    def test_hybrid_when_dictionary_found_something(self, extractor):
        base = extractor.extract("Python", "en")
        merged = extractor.with_generative_skills(base, ["Python", "Docker"])

        assert merged.extraction_method == ExtractionMethod.HYBRID
        assert merged.all_skills().count("Python") == 1
        assert "Docker" in merged.all_skills()

    def test_nothing_new_keeps_result(self, extractor):
        base = extractor.extract("Python", "en")
        assert extractor.with_generative_skills(base, ["python", "", None]) is base
