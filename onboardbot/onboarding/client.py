"""Service client factories and environment configuration.

This keeps the dependencies on the OpenAI and Supabase SDKs in one place,
which makes it easier to swap or mock them in tests. Nothing here is
instantiated at import time; callers build clients explicitly and pass
them into the agent/store/app.

Environment variables are loaded from a ``.env`` file if present, using
``python-dotenv``. The generation service is any OpenAI-compatible chat
completions endpoint (the Hugging Face router by default).
"""

from __future__ import annotations

import os
from typing import Any, Optional

from dotenv import load_dotenv
import httpx
from openai import OpenAI


# Load environment variables from a .env file if it exists.
load_dotenv()


DEFAULT_MODEL = os.getenv("ONBOARD_MODEL") or os.getenv("ONBOARD_HF_MODEL", "mistralai/Mistral-7B-Instruct-v0.3")

DEFAULT_BASE_URL = os.getenv("ONBOARD_LLM_BASE_URL", "https://router.huggingface.co/v1")

# Default request timeout (seconds) to avoid hanging forever.
DEFAULT_TIMEOUT_S = float(os.getenv("ONBOARD_TIMEOUT_S", "30"))

DEFAULT_MAX_TOKENS = int(os.getenv("ONBOARD_MAX_TOKENS", "80"))
DEFAULT_TEMPERATURE = float(os.getenv("ONBOARD_TEMPERATURE", "0.7"))

# Where the terminal chat client finds the API.
DEFAULT_API_URL = os.getenv("ONBOARD_API_URL", "http://127.0.0.1:8000")


def get_openai_client(api_key: Optional[str] = None, base_url: Optional[str] = None) -> OpenAI:
    """Return an OpenAI-compatible client configured from environment or explicit args.

    ``ONBOARD_LLM_API_KEY`` wins, then ``HF_API_KEY``, then whatever the SDK
    picks up on its own (``OPENAI_API_KEY``).
    """

    http_client = httpx.Client(timeout=httpx.Timeout(DEFAULT_TIMEOUT_S))
    api_key = api_key or os.getenv("ONBOARD_LLM_API_KEY") or os.getenv("HF_API_KEY")

    if api_key is not None:
        return OpenAI(api_key=api_key, base_url=base_url or DEFAULT_BASE_URL, http_client=http_client)

    # Fallback to env configuration (OPENAI_API_KEY, OPENAI_BASE_URL, etc.).
    return OpenAI(http_client=http_client)


def get_supabase_client(url: Optional[str] = None, key: Optional[str] = None) -> Any:
    """Return a Supabase client using the service-role key.

    The import is local so the in-memory backend and tests never need the
    Supabase SDK configured.
    """
    from supabase import create_client

    url = url or os.getenv("SUPABASE_URL")
    key = key or os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_SERVICE_KEY")
    if not url or not key:
        raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set.")
    return create_client(url, key)
