"""
Network advisor backed by the Gemini generateContent REST API
"""

import json
import logging

import requests

from models import IPStatus

logger = logging.getLogger(__name__)

GEMINI_API_URL = 'https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent'

ADVISOR_FAILURE_MESSAGE = (
    "Sorry, I can't process your request right now. "
    "Please check that the API key is valid."
)
NO_RESPONSE_MESSAGE = 'No response generated.'

SUBNET_PLAN_SCHEMA = {
    'type': 'OBJECT',
    'properties': {
        'name': {'type': 'STRING'},
        'cidr': {'type': 'STRING'},
        'description': {'type': 'STRING'}
    },
    'required': ['name', 'cidr', 'description']
}

PLAN_KEYWORDS = ('buatkan', 'plan', 'suggest')


def build_usage_context(subnets):
    """JSON summary of subnets and how many of their IPs are in use"""
    summary = [
        {
            'name': subnet['name'],
            'cidr': subnet['cidr'],
            'usage': sum(
                1 for record in subnet['records'].values()
                if record['status'] != IPStatus.AVAILABLE.value
            )
        }
        for subnet in subnets
    ]
    return json.dumps(summary)


def wants_subnet_plan(message):
    """Whether a chat message asks for a new subnet plan"""
    text = message.lower()
    return any(keyword in text for keyword in PLAN_KEYWORDS)


class GeminiError(Exception):
    pass


class GeminiService:
    def __init__(self, api_key, model='gemini-2.5-flash', timeout=30):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    @property
    def is_configured(self):
        return bool(self.api_key)

    def generate(self, prompt, response_schema=None):
        """Send a single-turn prompt and return the response text ('' when empty)"""
        if not self.is_configured:
            raise GeminiError('Gemini API key is not configured')

        payload = {'contents': [{'parts': [{'text': prompt}]}]}
        if response_schema is not None:
            payload['generationConfig'] = {
                'responseMimeType': 'application/json',
                'responseSchema': response_schema
            }

        response = requests.post(
            GEMINI_API_URL.format(model=self.model),
            headers={'x-goog-api-key': self.api_key, 'Content-Type': 'application/json'},
            json=payload,
            timeout=self.timeout
        )
        response.raise_for_status()
        data = response.json()

        candidates = data.get('candidates') or []
        if not candidates:
            return ''
        parts = candidates[0].get('content', {}).get('parts') or []
        return ''.join(part.get('text', '') for part in parts)

    def ask_network_advisor(self, prompt, context_data):
        """Free-form answer about IP management, given a JSON usage summary"""
        full_prompt = f"""You are an expert Senior Network Engineer and IPAM administrator.
Answer the user's question regarding IP address management, subnetting, or network architecture.

Current System Context (JSON Summary):
{context_data}

User Question: {prompt}

Provide a concise, professional, and actionable answer. Format with Markdown."""

        try:
            return self.generate(full_prompt) or NO_RESPONSE_MESSAGE
        except (requests.RequestException, GeminiError, ValueError) as e:
            logger.error(f"❌ Gemini API error: {e}")
            return ADVISOR_FAILURE_MESSAGE

    def suggest_subnet_plan(self, requirement):
        """JSON text {name, cidr, description} for a requirement, '{}' on failure"""
        prompt = f'User requirement: "{requirement}". Suggest a CIDR subnetting plan.'
        try:
            return self.generate(prompt, response_schema=SUBNET_PLAN_SCHEMA) or '{}'
        except (requests.RequestException, GeminiError, ValueError) as e:
            logger.error(f"❌ Gemini subnet plan error: {e}")
            return '{}'
