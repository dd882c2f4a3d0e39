"""Prompt text for the code-completion model.

The wording mirrors what the provider contract relies on: the model continues
the input exactly at the cursor and annotates every line with ``"  # "`` so
the editor can separate code from explanation.
"""

from __future__ import annotations

from typing import Literal

CompletionMode = Literal["chunk", "full", "step"]
COMPLETION_MODES: tuple[str, ...] = ("chunk", "full", "step")

INSTRUCTION_PROMPT = (
    "\n[SYSTEM]: Generate the next logical chunk of {language} code. "
    "CRITICAL: End your response with a {language} comment on a new line "
    "starting with '# [INSTRUCTION]: ' that explains exactly what step the user should implement next."
)


def augment_problem(problem: str, *, language: str = "python") -> str:
    """Append the next-step instruction hint sent with every editor request."""

    return problem + INSTRUCTION_PROMPT.format(language=language)


def build_completion_prompt(problem: str, code: str, language: str, mode: CompletionMode) -> str:
    """Return the single user prompt asking the model to continue ``code``."""

    if mode == "full":
        job = "Generate the REMAINING code from the cursor position to the end of the file."
    else:
        job = "Generate ONLY the immediate next logical chunk (4-8 lines)."
    return f"""
You are a precise "Code Completion Engine".
The user is typing a file in {language}.
The "INPUT CODE" below contains the file content **EXACTLY UP TO THE CURSOR**.

YOUR JOB:
{job}

CRITICAL RULES:
1. **NO REPETITION:** Do NOT output any code that is already in "INPUT CODE".
2. **CONTINUITY:** Your output must validly append strictly to the last character of the input.
3. **COMMENTING:** Append a comment "  # " to every line you generate explaining the logic.
4. **FORMAT:** Raw text only. No Markdown blocks.

CONTEXT:
Problem: {problem}

INPUT CODE (Ends at cursor):
{code or ""}

COMPLETION (Start immediately after the last character above):
"""
