import asyncio
import json
import logging
import re
from typing import List, Optional

from openai import AsyncAzureOpenAI

from config import settings

logger = logging.getLogger(__name__)

# Texts shorter than this are chat messages, not resumes worth a model call
LLM_FALLBACK_MIN_WORDS = 40


# -----------------------------
# Utility: Clean JSON safely
# -----------------------------
def clean_json_response(text: str) -> str:
    text = (text or "").strip()

    # Remove markdown fences if the model adds them anyway
    if text.startswith("```"):
        text = re.sub(r"^```(?:json)?|```$", "", text, flags=re.MULTILINE).strip()

    return text


# -----------------------------
# Skill extraction prompt
# -----------------------------
def build_prompt(text: str) -> str:
    return f"""
You are a skill extraction engine for an internal talent directory.

List every professional skill named in the text below: programming
languages, web technologies, databases, cloud and DevOps tools, frameworks,
and soft skills. The text may be in English or Spanish.

CRITICAL RULES:
- Use the common English name of each technology (e.g. "PostgreSQL", "Node.js").
- Do not invent skills that are not stated.
- Return STRICT JSON only.
- No explanation.
- No markdown.

OUTPUT FORMAT EXACTLY:

{{
  "skills": ["skill1", "skill2"]
}}

Text:
{text}
"""


class LLMSkillExtractor:
    """Generative fallback used when the dictionary pass recognises nothing."""

    def __init__(self, client, deployment: str, concurrency: int = settings.AZURE_CONCURRENCY):
        self.client = client
        self.deployment = deployment
        # Bounds parallel model calls across concurrent requests
        self.semaphore = asyncio.Semaphore(concurrency)

    @classmethod
    def from_settings(cls) -> Optional["LLMSkillExtractor"]:
        if not settings.llm_fallback_enabled():
            return None
        client = AsyncAzureOpenAI(
            api_key=settings.AZURE_OPENAI_API_KEY,
            azure_endpoint=settings.AZURE_OPENAI_ENDPOINT,
            api_version=settings.AZURE_OPENAI_API_VERSION,
        )
        return cls(client, settings.AZURE_OPENAI_DEPLOYMENT)

    @staticmethod
    def is_worth_trying(text: str) -> bool:
        return len((text or "").split()) >= LLM_FALLBACK_MIN_WORDS

    async def extract_skills(self, text: str) -> List[str]:
        """Skill names proposed by the model; [] when the call or parsing fails."""
        async with self.semaphore:
            try:
                response = await self.client.chat.completions.create(
                    model=self.deployment,
                    messages=[
                        {"role": "system", "content": "You extract skills from resumes and job requests."},
                        {"role": "user", "content": build_prompt(text)},
                    ],
                    temperature=0,
                )
                raw_content = response.choices[0].message.content
                parsed = json.loads(clean_json_response(raw_content))
            except Exception as e:
                logger.warning("Generative skill extraction failed: %s", e)
                return []

        skills = parsed.get("skills", []) if isinstance(parsed, dict) else []
        return [s.strip() for s in skills if isinstance(s, str) and s.strip()]
