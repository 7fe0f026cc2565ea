import asyncio
import logging
import os

import uvicorn

from api.app import create_app
from config.settings import API_HOST, API_PORT, LOG_FILE, LOG_LEVEL, RESUME_INPUT_DIR
from config.taxonomy import SkillTaxonomy
from database.mongo import create_indexes, get_database
from lifecycle.request_manager import build_manager
from models.api_model import ExtractSearchRequest, IngestCandidateRequest
from parsers.llm_extractor import LLMSkillExtractor
from parsers.pdf_extractor import PDF_SUFFIX, TEXT_SUFFIXES, load_attachment_text
from utils.errors import ResolutionError, SkillMatcherError
from utils.logger import setup_logging

logger = logging.getLogger("main")

RESUME_SUFFIXES = TEXT_SUFFIXES + (PDF_SUFFIX,)


# -----------------------------------
# Ingest all resumes in a folder
# -----------------------------------
async def ingest_resume(manager, path: str):
    text = await asyncio.to_thread(load_attachment_text, path)
    if not text.strip():
        print(f"⚠ Skipped (no text): {path}")
        return
    try:
        result = await manager.ingest_candidate(
            IngestCandidateRequest(text=text, file_name=os.path.basename(path), file_url=path, extraction_source="cli")
        )
    except ResolutionError:
        print(f"⚠ Skipped (no email or name): {path}")
        return
    candidate = result.candidate_result
    print(f"✅ {os.path.basename(path)}: {candidate.action} {candidate.employee_id}")
    for line in candidate.changes_summary:
        print(f"   - {line}")


async def ingest_all_resumes(manager, resume_dir: str = RESUME_INPUT_DIR):
    if not os.path.isdir(resume_dir):
        print(f"Resume folder not found: {resume_dir}")
        return

    files = [
        os.path.join(resume_dir, f)
        for f in sorted(os.listdir(resume_dir))
        if f.lower().endswith(RESUME_SUFFIXES)
    ]

    if not files:
        print("No resume files found.")
        return

    results = await asyncio.gather(*(ingest_resume(manager, f) for f in files), return_exceptions=True)
    for path, result in zip(files, results):
        if isinstance(result, Exception):
            logger.error("Ingestion failed for %s: %s", path, result)
            print(f"❌ Ingestion failed for {path}: {result}")
    print("Resume folder processed.\n")


# -----------------------------------
# Search by free text
# -----------------------------------
async def search(manager, text: str):
    response = await manager.extract_and_search(ExtractSearchRequest(text=text))
    block = response.extracted_skills
    print(f"\nRecognised {block.total_skills_found} skills "
          f"(language: {block.language}, confidence: {block.confidence:.2f})")

    if not response.matching_employees:
        print("No matching candidates found.\n")
        return

    print("\nTop Matching Candidates:\n")
    for idx, entry in enumerate(response.matching_employees, 1):
        print(f"{idx}. {entry.employee_name or entry.employee_id}")
        print(f"   Score: {entry.match_score}")
        print(f"   Skills: {', '.join(entry.matching_skills)}")
        print(f"   {entry.ai_summary}")
        print()


# -----------------------------------
# Main Continuous Menu
# -----------------------------------
def main_menu():
    setup_logging(LOG_LEVEL, LOG_FILE)

    db = get_database()
    create_indexes(db)
    taxonomy = SkillTaxonomy.from_file()

    def new_manager():
        # Locks, semaphores and the async OpenAI client belong to one event loop,
        # so each asyncio.run gets its own manager
        return build_manager(db, taxonomy=taxonomy, llm_extractor=LLMSkillExtractor.from_settings())

    while True:
        print("\n========== SKILL MATCHER ==========")
        print("1. Ingest Resumes")
        print("2. Search Candidates")
        print("3. Start API Server")
        print("4. Exit")

        choice = input("Enter choice: ").strip()

        try:
            if choice == "1":
                folder = input(f"Resume folder [{RESUME_INPUT_DIR}]: ").strip() or RESUME_INPUT_DIR
                asyncio.run(ingest_all_resumes(new_manager(), folder))

            elif choice == "2":
                text = input("Describe the skills you need: ").strip()
                if not text:
                    print("Nothing to search for.\n")
                    continue
                asyncio.run(search(new_manager(), text))

            elif choice == "3":
                uvicorn.run(create_app(new_manager()), host=API_HOST, port=API_PORT)

            elif choice == "4":
                print("Exiting system. Goodbye!")
                break

            else:
                print("Invalid choice. Please select 1-4.\n")

        except SkillMatcherError as e:
            print(f"❌ {e}\n")


if __name__ == "__main__":
    main_menu()
