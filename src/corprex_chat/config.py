"""
Runtime configuration.

Provider credentials are looked up in a mounted secrets directory first
('/secrets/<NAME>') and then in the environment. A missing credential is never
a startup error: the matching provider adapter is simply built without a client.
"""

import os
from pathlib import Path

from pydantic import BaseModel

from corprex_chat.llms.base import Provider
from corprex_chat.llms.registry import DEFAULT_MODEL_ID

SECRETS_DIR = Path("/secrets")

ENV_VARS: dict[Provider, str] = {
    Provider.OPENAI: "OPENAI_API_KEY",
    Provider.ANTHROPIC: "ANTHROPIC_API_KEY",
    Provider.GOOGLE: "GOOGLE_AI_API_KEY",
    Provider.GROQ: "GROQ_API_KEY",
}


def get_secret(name: str, secrets_dir: Path = SECRETS_DIR) -> str | None:
    """Load a secret from '<secrets_dir>/<name>' or the '<name>' environment variable.

    Returns None when neither is set or both are blank.
    """
    secret_file = secrets_dir / name
    if secret_file.is_file():
        value = secret_file.read_text().strip()
        if value:
            return value
    return os.environ.get(name, "").strip() or None


class Settings(BaseModel):
    openai_api_key: str | None = None
    anthropic_api_key: str | None = None
    google_api_key: str | None = None
    groq_api_key: str | None = None
    default_model: str = DEFAULT_MODEL_ID
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000

    @classmethod
    def from_env(cls, secrets_dir: Path = SECRETS_DIR) -> "Settings":
        return cls(
            openai_api_key=get_secret(ENV_VARS[Provider.OPENAI], secrets_dir),
            anthropic_api_key=get_secret(ENV_VARS[Provider.ANTHROPIC], secrets_dir),
            google_api_key=get_secret(ENV_VARS[Provider.GOOGLE], secrets_dir),
            groq_api_key=get_secret(ENV_VARS[Provider.GROQ], secrets_dir),
            default_model=os.environ.get("CORPREX_DEFAULT_MODEL") or DEFAULT_MODEL_ID,
            log_level=os.environ.get("CORPREX_LOG_LEVEL") or "INFO",
            host=os.environ.get("CORPREX_HOST") or "127.0.0.1",
            port=int(os.environ.get("CORPREX_PORT") or 8000),
        )

    def credential_for(self, provider: Provider) -> str | None:
        match provider:
            case Provider.OPENAI:
                return self.openai_api_key
            case Provider.ANTHROPIC:
                return self.anthropic_api_key
            case Provider.GOOGLE:
                return self.google_api_key
            case Provider.GROQ:
                return self.groq_api_key
            case _:
                return None
