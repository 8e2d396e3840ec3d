"""
Prompt templates for the refinement loop.

Both prompts share the same response contract (see parser.py). The
refinement prompt adds the previous attempt, its reasoning and the
validator's feedback. Loop bookkeeping such as the iteration number is
deliberately kept out of the text the model sees.
"""
from __future__ import annotations

from mathscribe.refinement.parser import CONFIDENCE_TAG, REASONING_TAG, RESULT_TAG

# ──────────────────────────────────────────────
# Templates
# ──────────────────────────────────────────────

RESPONSE_FORMAT = f"""IMPORTANT: Your response MUST follow this exact format:
<{REASONING_TAG}>
{{reasoning_hint}}
</{REASONING_TAG}>

<{CONFIDENCE_TAG}>
[A single number between 0.0 and 1.0 stating how confident you are in the result]
</{CONFIDENCE_TAG}>

<{RESULT_TAG}>
{{result_hint}}
</{RESULT_TAG}>"""

INITIAL_PROMPT = """You are a specialized mathematical reasoning assistant.
Your task is to {task}.

Follow these steps:
1. Carefully analyze the input
2. Identify the key components and their relationships
3. Apply mathematical reasoning to solve the problem
4. Ensure accuracy and precision in your work
5. Double-check your solution for errors

{response_format}

Input:
{input}"""

REFINEMENT_PROMPT = """You are a specialized mathematical reasoning assistant.
Your task is to {task}.

Your previous attempt had issues. Here's the feedback:
{feedback}

Here was your previous reasoning:
{previous_reasoning}

Your previous result was:
{previous_result}

Your previous confidence was {previous_confidence:.2f}.

Please refine your approach and provide a more accurate result.
Address every point of the feedback explicitly in your reasoning.

{response_format}

Input:
{input}"""


def build_initial_prompt(task: str, input_text: str) -> str:
    response_format = RESPONSE_FORMAT.format(
        reasoning_hint="[Detail your step-by-step reasoning process]",
        result_hint="[ONLY the final result with no explanations or additional text]",
    )
    return INITIAL_PROMPT.format(task=task, response_format=response_format, input=input_text)


def build_refinement_prompt(
    task: str,
    input_text: str,
    previous_result: str,
    feedback: str,
    previous_reasoning: str,
    previous_confidence: float,
) -> str:
    response_format = RESPONSE_FORMAT.format(
        reasoning_hint=(
            "[Detail your step-by-step refinement process, "
            "explaining how you're addressing the issues]"
        ),
        result_hint="[ONLY the improved final result with no explanations or additional text]",
    )
    return REFINEMENT_PROMPT.format(
        task=task,
        feedback=feedback,
        previous_reasoning=previous_reasoning or "(none provided)",
        previous_result=previous_result,
        previous_confidence=previous_confidence,
        response_format=response_format,
        input=input_text,
    )
