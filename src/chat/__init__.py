"""Persona text chat (Adina, Rafa)."""

from src.chat.service import PersonaChatService, build_system_prompt, extract_response

__all__ = ["PersonaChatService", "build_system_prompt", "extract_response"]
