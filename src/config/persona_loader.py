"""
YAML persona loader.

Loads persona profiles (system prompt, tone, style) from
``prompts/personas/<persona>.yaml``.
"""

from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field

from src.session.exceptions import ConfigurationError, InvalidArgument
from src.session.models import VALID_PERSONAS


class PersonaProfile(BaseModel):
    """Conversational profile of a persona."""

    name: str
    display_name: str
    system_prompt: str = ""
    context_prompt: Optional[str] = None
    tone: Optional[str] = None
    style: Optional[str] = None
    temperature: float = Field(default=0.8, ge=0.0, le=2.0)
    response_prefixes: List[str] = Field(default_factory=lambda: ["Persona:", "Assistant:"])


class PersonaLoader:
    """Loader for persona profiles from YAML files."""

    def __init__(self, base_path: Optional[Path] = None):
        """
        Args:
            base_path: Directory containing ``<persona>.yaml`` files
        """
        if base_path is None:
            project_root = Path(__file__).parent.parent.parent
            base_path = project_root / "prompts" / "personas"

        self.base_path = Path(base_path)
        self._cache: Dict[str, PersonaProfile] = {}

    def get(self, persona: str) -> PersonaProfile:
        """
        Get a persona profile.

        Args:
            persona: Persona value, e.g. "adina"

        Returns:
            Parsed PersonaProfile

        Raises:
            InvalidArgument: Unknown persona
            ConfigurationError: Known persona without a profile file
        """
        if persona not in VALID_PERSONAS:
            raise InvalidArgument(f"Unknown persona: {persona}")

        if persona in self._cache:
            return self._cache[persona]

        file_path = self.base_path / f"{persona}.yaml"
        if not file_path.exists():
            raise ConfigurationError(f"Persona profile not found: {file_path}")

        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        data.setdefault("name", persona)
        profile = PersonaProfile(**data)
        self._cache[persona] = profile
        return profile

    def clear_cache(self) -> None:
        self._cache.clear()


_loader: Optional[PersonaLoader] = None


def get_persona_loader() -> PersonaLoader:
    """Shared loader instance."""
    global _loader
    if _loader is None:
        _loader = PersonaLoader()
    return _loader
