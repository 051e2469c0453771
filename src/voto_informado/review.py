from __future__ import annotations

from getpass import getpass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .quiz import QUESTIONS, Question

Prompt = Callable[[str], str]


def ask_default(prompt: str, default: str | None = None, read: Prompt = input) -> str:
    print(prompt)
    if default:
        print(f"[Enter to keep] Current: {default}")
    val = read("> ").strip()
    return default if (not val and default is not None) else val


def ask_text(prompt: str, read: Prompt = input) -> str:
    # Blank input re-prompts
    while True:
        val = read(prompt).strip()
        if val:
            return val


def ask_secret(prompt: str) -> str:
    return getpass(prompt).strip()


def _print_choices(choices: Sequence[Tuple[str, str]]):
    for i, (_, label) in enumerate(choices, start=1):
        print(f"  {i}) {label}")


def choose_one(prompt: str, choices: Sequence[Tuple[str, str]], read: Prompt = input, default: Optional[str] = None) -> str:
    print(prompt)
    _print_choices(choices)
    while True:
        raw = read("> ").strip()
        if not raw and default is not None:
            return default
        if raw.isdigit() and 1 <= int(raw) <= len(choices):
            return choices[int(raw) - 1][0]
        for value, _ in choices:
            if raw.lower() == value.lower():
                return value
        print(f"Elegí un número entre 1 y {len(choices)}.")


def choose_many(prompt: str, choices: Sequence[Tuple[str, str]], read: Prompt = input) -> List[str]:
    print(prompt)
    _print_choices(choices)
    print("(números separados por coma, Enter para ninguno)")
    while True:
        raw = read("> ").strip()
        if not raw:
            return []
        picked: List[str] = []
        ok = True
        for part in raw.replace(" ", "").split(","):
            if part.isdigit() and 1 <= int(part) <= len(choices):
                value = choices[int(part) - 1][0]
                if value not in picked:
                    picked.append(value)
            else:
                ok = False
                break
        if ok:
            return picked
        print(f"Usá números entre 1 y {len(choices)}, separados por coma.")


def run_questionnaire(questions: Sequence[Question] = QUESTIONS, read: Prompt = input) -> Dict[str, object]:
    answers: Dict[str, object] = {}
    for q in questions:
        print("")
        if q.multi:
            answers[q.key] = choose_many(q.prompt, q.choices, read=read)
        else:
            answers[q.key] = choose_one(q.prompt, q.choices, read=read)
    return answers
