"""
Persona text chat.

Wraps a user message in the persona's system prompt, calls the LLM and
cleans the reply. Short per-session memory keeps follow-up questions in
context; it lives in process memory only.
"""

import threading
import time
from collections import OrderedDict, deque
from typing import Callable, Deque, Dict, List, Optional

import structlog

from src.config.persona_loader import PersonaLoader, PersonaProfile
from src.llm.openai_client import OpenAICompatibleClient
from src.session.exceptions import InvalidArgument

logger = structlog.get_logger("chat")

MAX_MESSAGE_LENGTH = 4000
MEMORY_TURNS = 6
# Conversations kept at once; the least recently used is dropped first
MAX_MEMORY_KEYS = 1000


def build_system_prompt(profile: PersonaProfile) -> str:
    """Persona system prompt with tone, style and context appended."""
    prompt = profile.system_prompt.strip()
    if profile.tone or profile.style:
        prompt += f"\n\nTone: {profile.tone or 'Not specified'}"
        prompt += f"\nStyle: {profile.style or 'Not specified'}"
    if profile.context_prompt:
        prompt += f"\n\n{profile.context_prompt.strip()}"
    return prompt.strip()


def extract_response(reply: str, profile: PersonaProfile) -> str:
    """Strip speaker prefixes such as ``Assistant:`` from an LLM reply."""
    cleaned = (reply or "").strip()
    for prefix in profile.response_prefixes:
        if cleaned.startswith(prefix):
            cleaned = cleaned[len(prefix):].strip()
    return cleaned


class PersonaChatService:
    """
    Text chat with a persona.

    Usage:
        chat = PersonaChatService(PersonaLoader(), llm)
        reply = await chat.reply("adina", "I feel anxious today", session_id="abc")
    """

    def __init__(
        self,
        loader: PersonaLoader,
        llm: OpenAICompatibleClient,
        max_conversations: int = MAX_MEMORY_KEYS,
        clock: Callable[[], float] = time.time,
    ):
        self.loader = loader
        self.llm = llm
        self.max_conversations = max_conversations
        self._clock = clock
        self._lock = threading.Lock()
        # key -> turns, least recently used first
        self._memory: "OrderedDict[str, Deque[Dict[str, str]]]" = OrderedDict()
        self._last_used: Dict[str, float] = {}

    def _history(self, key: Optional[str]) -> List[Dict[str, str]]:
        if key is None:
            return []
        with self._lock:
            return list(self._memory.get(key, ()))

    def _remember(self, key: Optional[str], user: str, assistant: str) -> None:
        if key is None:
            return
        with self._lock:
            turns = self._memory.get(key)
            if turns is None:
                turns = self._memory[key] = deque(maxlen=MEMORY_TURNS * 2)
            self._memory.move_to_end(key)
            self._last_used[key] = self._clock()
            turns.append({"role": "user", "content": user})
            turns.append({"role": "assistant", "content": assistant})
            while len(self._memory) > self.max_conversations:
                oldest, _ = self._memory.popitem(last=False)
                self._last_used.pop(oldest, None)

    def evict_idle(self, max_age_seconds: float) -> int:
        """Forget conversations untouched for more than ``max_age_seconds``."""
        cutoff = self._clock() - max_age_seconds
        with self._lock:
            stale = [k for k, used in self._last_used.items() if used < cutoff]
            for k in stale:
                self._memory.pop(k, None)
                del self._last_used[k]
        if stale:
            logger.info("chat_memory_evicted", evicted=len(stale), max_age_seconds=max_age_seconds)
        return len(stale)

    @property
    def conversation_count(self) -> int:
        with self._lock:
            return len(self._memory)

    def clear_memory(self, session_id: str) -> int:
        """Forget every persona conversation for an app session."""
        with self._lock:
            keys = [k for k in self._memory if k.startswith(f"{session_id}:")]
            for k in keys:
                del self._memory[k]
                self._last_used.pop(k, None)
        return len(keys)

    async def reply(self, persona: str, message: Optional[str], session_id: Optional[str] = None) -> str:
        """
        Get the persona's reply to a message.

        Raises:
            InvalidArgument: Empty or oversized message, unknown persona
            ConfigurationError: Persona profile missing
            UpstreamError: LLM failure
        """
        text = (message or "").strip()
        if not text:
            raise InvalidArgument("Message is required")
        if len(text) > MAX_MESSAGE_LENGTH:
            raise InvalidArgument(f"Message exceeds {MAX_MESSAGE_LENGTH} characters")

        profile = self.loader.get(persona)
        memory_key = f"{session_id}:{profile.name}" if session_id else None

        messages = [{"role": "system", "content": build_system_prompt(profile)}]
        messages.extend(self._history(memory_key))
        messages.append({"role": "user", "content": text})

        raw = await self.llm.chat(messages, temperature=profile.temperature)
        answer = extract_response(raw, profile)
        self._remember(memory_key, text, answer)

        logger.info(
            "persona_reply",
            persona=profile.name,
            session_id=session_id,
            message_length=len(text),
            reply_length=len(answer),
        )
        return answer
