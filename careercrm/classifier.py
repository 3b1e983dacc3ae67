"""Email classification with the Gemini API."""

import json
import logging
import re
from typing import Any

import requests
from pydantic import ValidationError

from .config import Config
from .models import AnalysisResult, JobStatus

logger = logging.getLogger(__name__)

GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

MIN_KEY_LENGTH = 10
MAX_BODY_CHARS = 6000

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "company": {"type": "STRING"},
        "statusUpdate": {"type": "STRING", "enum": [s.value for s in JobStatus]},
        "isJobRelated": {"type": "BOOLEAN"},
        "recruiter": {
            "type": "OBJECT",
            "nullable": True,
            "properties": {
                "name": {"type": "STRING"},
                "email": {"type": "STRING"},
                "role": {"type": "STRING"},
                "linkedIn": {"type": "STRING"},
            },
        },
    },
    "required": ["company", "statusUpdate", "isJobRelated"],
}


def build_prompt(subject: str, body: str) -> str:
    """Build the classification prompt for one email."""
    truncated_body = body[:MAX_BODY_CHARS]
    statuses = ", ".join(f'"{s.value}"' for s in JobStatus)

    return f"""You are a strict assistant for a personal job application tracker. Decide whether this email is DIRECTLY about a job application process with a specific company. Be critical and ignore generic notifications.

Rules:
1. Job-related ONLY: the email must be about a specific job application, interview, coding test or offer. Marketing, newsletters and job-board alerts (LinkedIn, ZipRecruiter, Indeed) and room bookings are NOT job-related.
2. company: the real company name. If no company is mentioned, or it is a generic service, return "". Never use generic words, months or "null" as a company.
3. If the email is not job-related, set isJobRelated to false and leave the other fields empty.
4. statusUpdate: one of {statuses}.
5. recruiter: if a specific recruiter is mentioned, extract name, email, role and linkedIn; otherwise null.

Email subject: {subject}

Email body:
{truncated_body}

Return valid JSON only:
{{"company": string, "statusUpdate": string, "recruiter": {{"name": string, "email": string, "role": string, "linkedIn": string}} | null, "isJobRelated": boolean}}"""


def parse_response_text(content: str) -> dict[str, Any]:
    """Parse the JSON payload out of a model response."""
    # Handle potential markdown code blocks
    content = re.sub(r"^```(?:json)?\s*", "", content.strip())
    content = re.sub(r"\s*```$", "", content)
    data = json.loads(content.strip())

    if isinstance(data, list):
        data = data[0] if data else {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


class GeminiClassifier:
    """Turns (subject, body) into an AnalysisResult.

    Never raises: a missing key or any failure yields the not-job-related
    sentinel so a single bad message cannot abort a scan.
    """

    def __init__(self, config: Config):
        self.config = config

    @property
    def has_credential(self) -> bool:
        key = self.config.gemini_api_key or ""
        return len(key.strip()) >= MIN_KEY_LENGTH

    def analyze(self, subject: str, body: str) -> AnalysisResult:
        if not self.has_credential:
            logger.error("Gemini API key is missing or too short, skipping analysis")
            return AnalysisResult.not_job_related()

        try:
            response = requests.post(
                GEMINI_API_URL.format(model=self.config.gemini_model),
                headers={
                    "x-goog-api-key": self.config.gemini_api_key.strip(),
                    "Content-Type": "application/json",
                },
                json={
                    "contents": [{"parts": [{"text": build_prompt(subject, body)}]}],
                    "generationConfig": {
                        "responseMimeType": "application/json",
                        "responseSchema": RESPONSE_SCHEMA,
                        "temperature": 0,
                    },
                },
                timeout=self.config.request_timeout,
            )
            response.raise_for_status()

            result = response.json()
            parts = result.get("candidates", [{}])[0].get("content", {}).get("parts", [])
            content = "".join(p.get("text", "") for p in parts)
            if not content:
                raise ValueError("Empty response from analysis service")

            logger.debug(f"Raw analysis response: {content}")
            analysis = AnalysisResult.model_validate(parse_response_text(content))
            logger.info(
                f"Analyzed '{subject[:50]}': related={analysis.is_job_related} "
                f"company={analysis.company!r} status={analysis.status_update.value}"
            )
            return analysis

        except requests.RequestException as e:
            logger.warning(f"Gemini API request failed: {e}")
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse analysis response as JSON: {e}")
        except ValidationError as e:
            logger.warning(f"Analysis response did not match schema: {e}")
        except Exception as e:
            logger.warning(f"Email analysis failed: {e}")

        return AnalysisResult.not_job_related()
