"""
OptSolv Backend — Classification Gateway
==========================================

What:  Splits extracted note text into actionable tasks and informational
       notes, plus an optional summary.
How:   Fills a fixed prompt template, asks the language model for JSON
       (response_mime_type=application/json), strips any markdown code
       fences the model wraps around it, parses, then validates the result
       against AnalysisResult.
Who:   The pipeline orchestrator (analyzing stage) and POST /api/analyze.

Failure modes:
    blank text / bad document id → ValidationError
    Gemini key missing           → ConfigurationError
    model call failed            → ServiceError / CircuitBreakerOpenError
    output is not JSON           → ParseError
    JSON of the wrong shape      → SchemaError

Re-running on the same text may give a different (valid) answer; nothing
here retries automatically.
"""

import json
import logging
import re
import uuid
from typing import Any, Optional

import pydantic

from optsolv.config import settings
from optsolv.exceptions import (
    ConfigurationError,
    ParseError,
    SchemaError,
    ValidationError,
)
from optsolv.schemas.analysis import AnalysisResult
from optsolv.services.gemini_client import gemini_client
from optsolv.services.llm_base import LLMService

logger = logging.getLogger(__name__)

ANALYSIS_PROMPT_TEMPLATE = """Analyze the following text extracted from a handwritten note and organize it.

Identify:
1. TASKS: actionable items, things to do, reminders. For each task provide:
   - title: short title (required)
   - description: more detail (optional)
   - priority: "low", "medium" or "high" based on the context (optional)
   - dueDate: due date in ISO 8601 format, only if a date is mentioned (optional)
2. NOTES: information, ideas, general annotations. For each note provide:
   - title: short title (required)
   - content: the full content (required)
3. SUMMARY: a short summary of the whole document (optional)

Text:
\"\"\"
{text}
\"\"\"

Return ONLY the JSON, in this exact format:
{{
  "tasks": [{{"title": "...", "description": "...", "priority": "medium", "dueDate": "2024-01-31T00:00:00Z"}}],
  "notes": [{{"title": "...", "content": "..."}}],
  "summary": "..."
}}"""

ANALYSIS_GENERATION_CONFIG = {
    "temperature": 0.7,
    "top_p": 0.95,
    "top_k": 40,
    "response_mime_type": "application/json",
}

_CODE_FENCE = re.compile(r"```(?:json)?\n?")


def strip_code_fences(raw: str) -> str:
    """
    Remove markdown fences around model output.

    >>> strip_code_fences('```json\\n{"tasks": []}\\n```')
    '{"tasks": []}'
    """
    return _CODE_FENCE.sub("", raw).strip()


def parse_analysis(raw: str) -> AnalysisResult:
    """
    Raises:
        ParseError:  Not JSON after fence stripping.
        SchemaError: JSON that does not match the task/note schema.
    """
    cleaned = strip_code_fences(raw)
    try:
        payload: Any = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning("Classification output is not JSON: %s", str(e))
        raise ParseError(context={"position": e.pos})

    try:
        return AnalysisResult.model_validate(payload)
    except pydantic.ValidationError as e:
        logger.warning("Classification output failed schema validation: %d errors", e.error_count())
        raise SchemaError(
            context={
                "errors": [
                    {"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()[:10]
                ]
            }
        )


class ClassificationGateway:
    def __init__(self, llm: LLMService, model_name: Optional[str] = None):
        self.llm = llm
        self.model_name = model_name or settings.gemini_analysis_model

    def build_prompt(self, text: str) -> str:
        return ANALYSIS_PROMPT_TEMPLATE.format(text=text)

    async def classify(self, text: str, document_id: Any) -> AnalysisResult:
        """
        Args:
            text:        OCR output; must contain non-whitespace characters
            document_id: UUID (or its string form) of the document the text came from
        """
        if not isinstance(text, str) or not text.strip():
            raise ValidationError(message="Text is required", field="text")
        try:
            doc_id = document_id if isinstance(document_id, uuid.UUID) else uuid.UUID(str(document_id))
        except ValueError:
            raise ValidationError(message="Invalid document id", field="documentId")

        if not self.llm.is_configured:
            raise ConfigurationError("Analysis service not configured")

        raw = await self.llm.generate(
            self.model_name,
            [self.build_prompt(text)],
            ANALYSIS_GENERATION_CONFIG,
        )
        result = parse_analysis(raw)
        logger.info(
            "Document %s classified: %d tasks, %d notes",
            doc_id,
            len(result.tasks),
            len(result.notes),
        )
        return result


classification_gateway = ClassificationGateway(llm=gemini_client)
