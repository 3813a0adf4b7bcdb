import requests
import logging
from typing import Dict, List, Optional
from dataclasses import dataclass

from app.services.vehicle_resolution.errors import EnrichmentFailure
from app.utils.settings import Settings

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = (
    "You are an automotive data specialist. You fill gaps in vehicle specifications "
    "and answer only with JSON."
)


@dataclass
class AIProvider:
    """Configuration for AI provider"""
    name: str
    api_url: str
    api_key: Optional[str]
    model: str


class AIAssistantService:
    """
    Text completion client for the generative assistant used during enrichment.

    The assistant is advisory: callers get raw text back and are responsible
    for validating anything they use from it.
    """

    SUPPORTED_PROVIDERS = ('openai', 'gemini')

    def __init__(self, settings: Settings):
        if settings.ai_provider not in self.SUPPORTED_PROVIDERS:
            raise ValueError(
                f"Unsupported provider: {settings.ai_provider}. Supported providers: {list(self.SUPPORTED_PROVIDERS)}"
            )

        if settings.ai_provider == 'gemini':
            self.provider = AIProvider(
                name='Gemini',
                api_url='https://generativelanguage.googleapis.com/v1/models/',
                api_key=settings.gemini_api_key,
                model=settings.gemini_model,
            )
        else:
            self.provider = AIProvider(
                name='OpenAI',
                api_url=f"{settings.openai_base_url.rstrip('/')}/chat/completions",
                api_key=settings.openai_api_key,
                model=settings.openai_model,
            )
        self.timeout = settings.enrichment_timeout_ms / 1000.0

    @property
    def is_configured(self) -> bool:
        return bool(self.provider.api_key)

    def complete(self, prompt: str) -> str:
        """
        Send a prompt and return the assistant's text.

        Raises:
            EnrichmentFailure: If no API key is configured or the payload has no text.
            requests.exceptions.RequestException: For timeouts and HTTP errors.
        """
        if not self.is_configured:
            raise EnrichmentFailure(f"No API key configured for {self.provider.name}")

        logger.info(f"Calling {self.provider.name} ({self.provider.model}), prompt size {len(prompt)} chars")
        if self.provider.name == 'Gemini':
            return self._call_gemini_api(prompt)
        return self._call_openai_api(prompt)

    def _call_openai_api(self, prompt: str) -> str:
        headers = {
            'Authorization': f'Bearer {self.provider.api_key}',
            'Content-Type': 'application/json'
        }
        data = {
            'model': self.provider.model,
            'messages': self._messages(prompt),
            'temperature': 0.2,
            'max_tokens': 400
        }

        response = requests.post(self.provider.api_url, headers=headers, json=data, timeout=self.timeout)
        response.raise_for_status()

        result = response.json()
        try:
            return result['choices'][0]['message']['content'] or ''
        except (KeyError, IndexError, TypeError):
            raise EnrichmentFailure("Unexpected OpenAI response structure")

    def _call_gemini_api(self, prompt: str) -> str:
        full_api_url = f"{self.provider.api_url}{self.provider.model}:generateContent?key={self.provider.api_key}"
        data = {
            'contents': [
                {
                    'role': 'user',
                    'parts': [{'text': f"{SYSTEM_INSTRUCTION}\n\n{prompt}"}]
                }
            ],
            'generationConfig': {
                'temperature': 0.2,
                'maxOutputTokens': 400,
            }
        }

        response = requests.post(full_api_url, headers={'Content-Type': 'application/json'}, json=data, timeout=self.timeout)
        response.raise_for_status()

        result = response.json()
        try:
            return result['candidates'][0]['content']['parts'][0]['text']
        except (KeyError, IndexError, TypeError):
            raise EnrichmentFailure("Unexpected Gemini response structure")

    def _messages(self, prompt: str) -> List[Dict[str, str]]:
        return [
            {'role': 'system', 'content': SYSTEM_INSTRUCTION},
            {'role': 'user', 'content': prompt}
        ]
