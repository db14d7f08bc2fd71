from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List

import structlog

from roundtable.agents.reasoning import extract_final_answer
from roundtable.schemas.messages import Message, MessageRole
from roundtable.utils.llm_clients import ChatModel

logger = structlog.get_logger(__name__)

_SCORE = re.compile(r"Score:\s*([\d.]+)", re.IGNORECASE)
_FEEDBACK = re.compile(r"Feedback:\s*([\s\S]+?)(?:Improvements:|$)", re.IGNORECASE)
_IMPROVEMENTS = re.compile(r"Improvements:\s*([\s\S]+)", re.IGNORECASE)

EVALUATION_PROMPT = """Evaluate the following assistant response:

"{answer}"

Please provide:
1. A numeric score (0-1) assessing the quality and relevance of the response.
2. Detailed feedback about what the response did well or poorly.
3. Suggestions for improvements, if any.

Structure your response as follows:
Score: <numeric value>
Feedback: <detailed feedback>
Improvements: <suggested improvements>"""


@dataclass
class EvaluationResult:
    score: float
    feedback: str
    improvements: str = ""


class SimpleEvaluator:
    """Has a model grade the most recent final answer in a conversation."""

    def __init__(self, model: ChatModel) -> None:
        self.model = model

    async def evaluate(self, messages: Iterable[Message]) -> EvaluationResult:
        answer = last_final_answer(messages)
        if answer is None:
            logger.warning("evaluation_skipped", reason="no final answer in conversation")
            return EvaluationResult(
                score=0.0,
                feedback="No valid assistant response found to evaluate.",
                improvements="Ensure the assistant provides a response to the user query.",
            )

        raw = await self.model.call(
            [
                {"role": "system", "content": "You are an AI evaluator that critiques assistant responses."},
                {"role": "user", "content": EVALUATION_PROMPT.format(answer=answer)},
            ]
        )
        result = parse_evaluation(raw)
        logger.info("answer_evaluated", score=result.score)
        return result


def last_final_answer(messages: Iterable[Message]) -> str | None:
    for message in reversed(list(messages)):
        if message.role is not MessageRole.ASSISTANT:
            continue
        answer = extract_final_answer(message.content)
        if answer is not None:
            return answer
    return None


def parse_evaluation(raw: str) -> EvaluationResult:
    score_match = _SCORE.search(raw)
    feedback_match = _FEEDBACK.search(raw)
    improvements_match = _IMPROVEMENTS.search(raw)
    try:
        score = float(score_match.group(1)) if score_match else 0.0
    except ValueError:
        score = 0.0
    return EvaluationResult(
        score=min(max(score, 0.0), 1.0),
        feedback=feedback_match.group(1).strip() if feedback_match else "No feedback provided.",
        improvements=improvements_match.group(1).strip() if improvements_match else "No improvements suggested.",
    )


def average_score(results: List[EvaluationResult]) -> float:
    if not results:
        return 0.0
    return sum(r.score for r in results) / len(results)
