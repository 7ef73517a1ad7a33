from openai import OpenAI
import google.generativeai as genai
from leaddesk.config import settings
from leaddesk.core.exceptions import ExternalServiceError
import logging
import json
import re
import time

logger = logging.getLogger(__name__)

_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")


class AIService:
    def __init__(self):
        self.provider = "openai"
        self.client = None
        self.model = settings.AI_MODEL

        # Initialize Gemini if configured (preferred or if OpenAI missing)
        if settings.GEMINI_API_KEY:
            try:
                genai.configure(api_key=settings.GEMINI_API_KEY)
                self.client = genai.GenerativeModel(settings.AI_MODEL)
                self.provider = "gemini"
                logger.info("AI Service initialized with Gemini")
            except Exception as e:
                logger.error(f"Failed to initialize Gemini: {e}")

        # Fallback/Default to OpenAI if Gemini not set but OpenAI is
        if not self.client and settings.OPENAI_API_KEY:
            try:
                self.client = OpenAI(api_key=settings.OPENAI_API_KEY)
                self.provider = "openai"
                logger.info("AI Service initialized with OpenAI")
            except Exception as e:
                logger.error(f"Failed to initialize OpenAI: {e}")

    @property
    def is_configured(self) -> bool:
        return self.client is not None

    def _generate_content(self, prompt: str, json_mode: bool = True) -> str:
        """Helper to generate content from either provider."""
        if not self.client:
            raise ValueError("AI Client not initialized")

        if self.provider == "gemini":
            max_retries = 3
            base_delay = 20  # Seconds

            for attempt in range(max_retries):
                try:
                    response = self.client.generate_content(prompt)
                    text = response.text.strip()
                    # Clean markdown code blocks if present
                    if text.startswith("```json"):
                        text = text[7:]
                    if text.startswith("```"):
                        text = text[3:]
                    if text.endswith("```"):
                        text = text[:-3]
                    return text.strip()
                except Exception as e:
                    is_rate_limit = "429" in str(e) or "quota" in str(e).lower()
                    if is_rate_limit and attempt < max_retries - 1:
                        logger.warning(f"Gemini Rate Limit Hit. Waiting {base_delay}s... (Attempt {attempt+1}/{max_retries})")
                        time.sleep(base_delay)
                    else:
                        logger.error(f"Gemini generation failed: {e}")
                        raise

        else:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                response_format={"type": "json_object"} if json_mode else None,
                temperature=0.2
            )
            return response.choices[0].message.content

    @staticmethod
    def _parse_json(text: str) -> dict:
        """Parse model output as JSON, falling back to the first {...} block."""
        try:
            return json.loads(text)
        except (TypeError, ValueError):
            match = _JSON_BLOCK.search(text or "")
            if match:
                try:
                    return json.loads(match.group(0))
                except ValueError:
                    pass
        return {}

    def draft_reply(self, lead_data: dict, history: list, current_draft: str = "") -> dict:
        """
        Draft an email to a lead from the conversation so far.
        Returns {"subject": str, "body": str}.
        """
        if not self.client:
            raise ExternalServiceError("AI assistant", "no AI provider configured")

        prompt = f"""
        You are a friendly, professional sales representative for a flooring supplier.
        Write the next email to this lead.

        LEAD:
        Name: {lead_data.get('client_name')}
        Email: {lead_data.get('email')}
        Details: {lead_data.get('lead_details') or 'n/a'}

        CONVERSATION (oldest first):
        {json.dumps(history, default=str)}

        CURRENT DRAFT (improve it if present, keep its intent):
        {current_draft or 'none'}

        Reply to the most recent message from the lead when there is one.
        Keep it under 180 words, no placeholders, sign off as "The Sales Team".

        OUTPUT FORMAT (JSON ONLY):
        {{
            "subject": "<email subject>",
            "body": "<plain-text email body>"
        }}
        """

        try:
            result = self._parse_json(self._generate_content(prompt))
        except Exception as e:
            logger.error(f"AI reply drafting failed: {e}")
            raise ExternalServiceError("AI assistant", str(e))

        body = result.get("body")
        if not isinstance(body, str) or not body.strip():
            raise ExternalServiceError("AI assistant", "model returned no draft")

        subject = result.get("subject")
        return {"subject": subject if isinstance(subject, str) else "", "body": body.strip()}

    def fix_grammar(self, text: str) -> dict:
        """
        Correct grammar and punctuation of a business email.
        Returns {"text": str, "suggestions": [str]}; the input text comes
        back unchanged when the model is unavailable or its output is unusable.
        """
        unchanged = {"text": text, "suggestions": []}
        if not self.client or not text.strip():
            return unchanged

        prompt = f"""
        You are a concise grammar and clarity editor for business emails.
        Rewrite the text with correct grammar, punctuation and tone while preserving meaning.
        Keep lists and formatting when present.

        TEXT:
        {text}

        OUTPUT FORMAT (JSON ONLY):
        {{
            "text": "<corrected text>",
            "suggestions": ["<notable change>", ...]
        }}
        """

        try:
            result = self._parse_json(self._generate_content(prompt))
        except Exception as e:
            logger.error(f"AI grammar fix failed: {e}")
            return unchanged

        fixed = result.get("text")
        if not isinstance(fixed, str) or not fixed.strip():
            return unchanged

        suggestions = result.get("suggestions")
        if not isinstance(suggestions, list):
            suggestions = []
        return {"text": fixed, "suggestions": [str(s) for s in suggestions if s][:8]}


ai_service = AIService()
