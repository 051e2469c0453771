from __future__ import annotations

from typing import Callable, List

import structlog

from .config import LLMConfig
from .llm import Message, send
from .retrieve import TextLoader, build_context_message, retrieve
from .schemas import Corpus
from .topics import global_topics


logger = structlog.get_logger(__name__)

Sender = Callable[[List[Message], LLMConfig], str]

MAX_HISTORY = 10
EXIT_WORDS = {"salir", "exit"}


def build_system_prompt(corpus: Corpus) -> str:
    candidates = "\n".join(f"- {c.name} ({code}) - {c.party}" for code, c in corpus.candidates.items())
    topics = "\n".join(f"- {t}: {n} menciones" for t, n in global_topics(corpus, 10))
    return (
        "Sos un asistente experto en las elecciones presidenciales de Costa Rica 2026. "
        "Tu trabajo es ayudar a los votantes a informarse sobre los candidatos de manera objetiva y basada en datos.\n\n"
        f"CANDIDATOS PRESIDENCIALES 2026:\n{candidates}\n\n"
        "REGLAS IMPORTANTES:\n"
        "1. Sé objetivo y neutral - no favorezcas a ningún candidato\n"
        "2. Basá tus respuestas en las transcripciones de entrevistas que te proporciono\n"
        "3. Cuando cites algo, indicá la fuente (ej: \"En la entrevista del TSE, X dijo...\")\n"
        "4. Si no tenés información sobre algo, decilo claramente\n"
        "5. Respondé en español costarricense\n"
        "6. Sé conciso pero informativo\n"
        "7. Si te preguntan por quién votar, explicá que eso es decisión personal y ofrecé comparar opciones\n\n"
        f"TEMAS PRINCIPALES EN LA CAMPAÑA:\n{topics}\n\n"
        "Cuando el usuario pregunte sobre un candidato o tema, usá el contexto de las transcripciones "
        "para dar respuestas precisas y citables."
    )


def prune_history(history: List[Message], limit: int = MAX_HISTORY) -> bool:
    # Drop the oldest user/assistant pair, index 0 is the system prompt
    if len(history) <= limit:
        return False
    del history[1:3]
    return True


class ChatSession:
    def __init__(self, corpus: Corpus, loader: TextLoader, config: LLMConfig, sender: Sender = send):
        self.corpus = corpus
        self.loader = loader
        self.config = config
        self.sender = sender
        self.history: List[Message] = [{"role": "system", "content": build_system_prompt(corpus)}]

    def turn(self, user_input: str) -> str:
        chunks = retrieve(user_input, self.corpus, self.loader)
        self.history.append({"role": "user", "content": build_context_message(user_input, chunks)})
        try:
            reply = self.sender(self.history, self.config)
        except Exception:
            self.history.pop()
            raise
        self.history.append({"role": "assistant", "content": reply})
        if prune_history(self.history):
            logger.debug("history_pruned", size=len(self.history))
        return reply


def ask(question: str, corpus: Corpus, loader: TextLoader, config: LLMConfig, sender: Sender = send) -> str:
    chunks = retrieve(question, corpus, loader)
    messages: List[Message] = [
        {"role": "system", "content": build_system_prompt(corpus)},
        {"role": "user", "content": build_context_message(question, chunks, label="PREGUNTA")},
    ]
    return sender(messages, config)
