"""
Learner-side content and mini-question endpoints.
"""

from typing import Any, Dict, Optional

from ..adapters.api_client import LighthouseApiClient


class ContentService:

    def __init__(self, client: LighthouseApiClient):
        self.client = client

    async def submit_mini_answer(self,
                                 mini_question_id: str,
                                 link_url: str,
                                 notes: Optional[str] = None) -> Dict[str, Any]:
        payload = {"miniQuestionId": mini_question_id, "linkUrl": link_url}
        if notes is not None:
            payload["notes"] = notes
        response = await self.client.post("/game/mini-answer", json=payload)
        return response.json()

    async def get_mini_answers(self, question_id: str) -> Dict[str, Any]:
        response = await self.client.get(f"/game/questions/{question_id}/mini-answers")
        return response.json()

    async def get_content_progress(self, question_id: str) -> Dict[str, Any]:
        response = await self.client.get(f"/game/questions/{question_id}/content-progress")
        return response.json()
