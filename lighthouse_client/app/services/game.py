"""
Trainee game endpoints under ``/game``.
"""

import time
from pathlib import Path
from typing import Any, BinaryIO, Dict, Optional, Tuple, Union

from lighthouse_shared.logging import get_logger

from ..adapters.api_client import LighthouseApiClient

Attachment = Union[str, Path, Tuple[str, BinaryIO], Tuple[str, BinaryIO, str]]

# Placeholder ids that a form can produce for an unselected question
_INVALID_IDS = {"", "NaN", "undefined", "null"}


def cache_buster() -> Dict[str, int]:
    """Millisecond timestamp query parameter that defeats HTTP caches."""
    return {"_t": int(time.time() * 1000)}


def valid_question_id(question_id: Optional[Any]) -> Optional[str]:
    if question_id is None:
        return None
    value = str(question_id)
    return None if value in _INVALID_IDS else value


class GameService:
    """Progress, modules, answers and leaderboard for the signed-in trainee."""

    def __init__(self, client: LighthouseApiClient):
        self.client = client
        self.logger = get_logger("lighthouse.game")

    async def get_cohort_info(self) -> Dict[str, Any]:
        response = await self.client.get("/game/cohort-info")
        return response.json()

    async def get_progress(self) -> Dict[str, Any]:
        response = await self.client.get("/game/progress", params=cache_buster())
        return response.json()

    async def get_cohort_history(self) -> Dict[str, Any]:
        response = await self.client.get("/game/cohort-history")
        return response.json()

    async def submit_answer(self,
                            link: str,
                            notes: str = "",
                            question_id: Optional[Any] = None,
                            attachment: Optional[Attachment] = None) -> Dict[str, Any]:
        """Submit an answer as multipart form data, optionally with a file."""
        data = {"link": link, "notes": notes}
        question = valid_question_id(question_id)
        if question:
            data["questionId"] = question

        if attachment is None:
            response = await self.client.post("/game/answer", data=data)
            return response.json()

        if isinstance(attachment, (str, Path)):
            path = Path(attachment)
            with path.open("rb") as handle:
                self.logger.debug("Submitting answer with attachment", filename=path.name)
                response = await self.client.post(
                    "/game/answer",
                    data=data,
                    files={"attachment": (path.name, handle)}
                )
        else:
            response = await self.client.post("/game/answer", data=data, files={"attachment": attachment})
        return response.json()

    async def request_resubmission(self, answer_id: str) -> Dict[str, Any]:
        response = await self.client.post(f"/game/answer/{answer_id}/request-resubmission")
        return response.json()

    async def get_answers(self) -> Dict[str, Any]:
        response = await self.client.get("/game/answers")
        return response.json()

    async def get_leaderboard(self) -> Dict[str, Any]:
        response = await self.client.get("/game/leaderboard")
        return response.json()

    async def get_modules(self) -> Dict[str, Any]:
        response = await self.client.get("/game/modules", params=cache_buster())
        return response.json()

    async def get_module_details(self, module_number: int) -> Dict[str, Any]:
        response = await self.client.get(f"/game/modules/{module_number}")
        return response.json()

    async def get_content_progress(self, question_id: str) -> Dict[str, Any]:
        response = await self.client.get(f"/game/questions/{question_id}/content-progress")
        return response.json()

    async def submit_mini_answer(self,
                                 mini_question_id: str,
                                 link_url: str,
                                 notes: Optional[str] = None) -> Dict[str, Any]:
        payload = {"miniQuestionId": mini_question_id, "linkUrl": link_url}
        if notes is not None:
            payload["notes"] = notes
        response = await self.client.post("/game/mini-answer", json=payload)
        return response.json()
