"""
Pytest configuration for the skill matcher tests.

MongoDB is replaced by mongomock, which honours the unique indexes the
resolver and the request lifecycle rely on.
"""
import mongomock
import pytest

from config.taxonomy import SkillTaxonomy
from database.mongo import create_indexes
from lifecycle.request_manager import build_manager
from parsers.skill_extractor import SkillExtractor


SPANISH_RESUME = """María González
Desarrolladora Senior de Software
maria.gonzalez@email.com | Tel: +34 612 345 678
Madrid, España

Perfil
Desarrolladora con 7 años de experiencia construyendo aplicaciones web.

Experiencia
Tech Corp - "Plataforma de Pagos"
4 años de experiencia desarrollando aplicaciones web con React y Node.js

Habilidades
Python Avanzado
React Avanzado
AWS avanzado
Liderazgo y trabajo en equipo
"""

ENGLISH_RESUME = """John Smith
Backend Engineer
john.smith@email.com
Location: Austin, USA

Summary
Backend engineer with 5 years of experience building APIs.

Experience
Acme Inc - Payments Platform
3 years with Python and Django, PostgreSQL and Docker.

Skills
Python, Django, PostgreSQL, Docker, AWS, Communication
"""


@pytest.fixture(scope="session")
def taxonomy():
    return SkillTaxonomy.from_file()


@pytest.fixture
def extractor(taxonomy):
    return SkillExtractor(taxonomy)


@pytest.fixture
def db():
    client = mongomock.MongoClient()
    database = client["skill_matcher_test"]
    create_indexes(database)
    return database


@pytest.fixture
def manager(db, taxonomy):
    return build_manager(db, taxonomy=taxonomy)


@pytest.fixture
def spanish_resume():
    return SPANISH_RESUME


@pytest.fixture
def english_resume():
    return ENGLISH_RESUME
