"""
Structural LaTeX checks.

Delimiter and environment balance decide validity. Style hints (a command
running straight into text, a number glued to a variable) are reported in
the feedback and lower the confidence, but do not make an expression invalid.
"""
from __future__ import annotations

import re
from typing import List

from mathscribe.refinement.base import ValidationOutcome
from mathscribe.tools.base import PASSED

_ENVIRONMENT_RE = re.compile(r"\\(begin|end)\{([^}]+)\}")
_UNESCAPED_DOLLAR_RE = re.compile(r"(?<!\\)\$")
_COMMAND_THEN_TEXT_RE = re.compile(r"\\[a-zA-Z]+\s[a-zA-Z]")
_DIGIT_THEN_LETTER_RE = re.compile(r"[0-9][a-zA-Z]")

# Below the default threshold, so a hinted result gets another round
STYLE_HINT_CONFIDENCE = 0.7


def bracket_balance(text: str, open_char: str, close_char: str) -> bool:
    """True when every closer matches an earlier opener and none are left open."""
    depth = 0
    for char in text:
        if char == open_char:
            depth += 1
        elif char == close_char:
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


def environments_balanced(latex: str) -> bool:
    """\\begin{x} ... \\end{x} pairs must match and nest properly."""
    stack: List[str] = []
    for match in _ENVIRONMENT_RE.finditer(latex):
        kind, name = match.group(1), match.group(2).strip()
        if kind == "begin":
            stack.append(name)
        elif not stack or stack.pop() != name:
            return False
    return not stack


def validate_latex(latex: str) -> ValidationOutcome:
    """Check a LaTeX string for structural problems."""
    if not latex or not latex.strip():
        return ValidationOutcome(valid=False, feedback="The result is empty; provide the LaTeX expression.")

    issues: List[str] = []
    if not bracket_balance(latex, "{", "}"):
        issues.append("unbalanced curly braces {}")
    if not bracket_balance(latex, "[", "]"):
        issues.append("unbalanced square brackets []")
    if not bracket_balance(latex, "(", ")"):
        issues.append("unbalanced parentheses ()")
    if len(_UNESCAPED_DOLLAR_RE.findall(latex)) % 2:
        issues.append("unbalanced dollar signs $")
    if not environments_balanced(latex):
        issues.append("unbalanced LaTeX environments")

    hints: List[str] = []
    if _COMMAND_THEN_TEXT_RE.search(latex):
        hints.append("commands without proper braces")
    if _DIGIT_THEN_LETTER_RE.search(latex):
        hints.append("missing operators between numbers and variables")

    if issues:
        feedback = f"LaTeX has issues: {', '.join(issues)}."
        if hints:
            feedback += f" Also check for {', '.join(hints)}."
        return ValidationOutcome(valid=False, feedback=feedback)

    if hints:
        return ValidationOutcome(
            valid=True,
            feedback=f"Possible style issues: {', '.join(hints)}.",
            confidence=STYLE_HINT_CONFIDENCE,
        )
    return PASSED
