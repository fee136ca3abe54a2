"""
Administrator endpoints under ``/admin``.

Modules and topics are presented on top of the backend's question model:
a module id has the form ``module-<n>`` and a module's topics are the
questions whose ``moduleNumber`` is ``n``.
"""

from typing import Any, Dict, List, Optional

from lighthouse_shared.errors import ValidationError
from lighthouse_shared.logging import get_logger

from ..adapters.api_client import LighthouseApiClient

MODULE_ID_PREFIX = "module-"

# Fields accepted by PUT /admin/questions/<id> when updating a topic
TOPIC_UPDATE_FIELDS = (
    "topicNumber", "title", "content", "description", "deadline",
    "points", "bonusPoints", "isReleased", "contents",
)


def parse_module_number(module_id: str) -> int:
    """Extract ``n`` from a ``module-<n>`` id."""
    raw = str(module_id)
    if raw.startswith(MODULE_ID_PREFIX):
        raw = raw[len(MODULE_ID_PREFIX):]
    try:
        return int(raw)
    except ValueError:
        raise ValidationError("Invalid module ID format", details={"module_id": module_id})


def question_to_topic(question: Dict[str, Any], module_number: int) -> Dict[str, Any]:
    """Map a backend question onto the topic shape used by module views."""
    return {
        "id": question.get("id"),
        "topicNumber": question.get("topicNumber") or question.get("questionNumber"),
        "title": question.get("title"),
        "content": question.get("content"),
        "description": question.get("description"),
        "deadline": question.get("deadline"),
        "points": question.get("points"),
        "bonusPoints": question.get("bonusPoints"),
        "isReleased": question.get("isReleased"),
        "module": {
            "id": f"{MODULE_ID_PREFIX}{module_number}",
            "moduleNumber": module_number,
            "title": f"Adventure {module_number}",
        },
    }


def _cohort_params(cohort_id: Optional[str]) -> Dict[str, str]:
    return {"cohortId": cohort_id} if cohort_id else {}


class AdminService:
    """Cohort, question, content and grading administration."""

    def __init__(self, client: LighthouseApiClient):
        self.client = client
        self.logger = get_logger("lighthouse.admin")

    async def _get(self, path: str, **kwargs) -> Any:
        return (await self.client.get(path, **kwargs)).json()

    async def _post(self, path: str, **kwargs) -> Any:
        return (await self.client.post(path, **kwargs)).json()

    async def _put(self, path: str, **kwargs) -> Any:
        return (await self.client.put(path, **kwargs)).json()

    async def _patch(self, path: str, **kwargs) -> Any:
        return (await self.client.patch(path, **kwargs)).json()

    async def _delete(self, path: str, **kwargs) -> Any:
        return (await self.client.delete(path, **kwargs)).json()

    # Users and grading

    async def get_all_users(self) -> Dict[str, Any]:
        return await self._get("/admin/users")

    async def get_pending_answers(self, cohort_id: Optional[str] = None) -> Dict[str, Any]:
        return await self._get("/admin/pending-answers", params=_cohort_params(cohort_id))

    async def review_answer(self, answer_id: int, status: str, feedback: Optional[str] = None) -> Dict[str, Any]:
        """Approve or reject an answer."""
        if status.lower() not in ("approved", "rejected"):
            raise ValidationError("Review status must be 'approved' or 'rejected'",
                                  details={"status": status})
        return await self._put(f"/admin/answer/{answer_id}/review",
                               json={"status": status.upper(), "feedback": feedback})

    async def grade_answer(self, answer_id: int, grade: str, feedback: str) -> Dict[str, Any]:
        return await self._put(f"/admin/answer/{answer_id}/review",
                               json={"grade": grade, "feedback": feedback})

    async def handle_resubmission_request(self, answer_id: int, approve: bool) -> Dict[str, Any]:
        return await self._put(f"/admin/answer/{answer_id}/resubmission-request",
                               json={"approve": approve})

    async def request_mini_answer_resubmission(self, mini_answer_id: str, user_id: int) -> Dict[str, Any]:
        return await self._post(f"/admin/mini-answer/{mini_answer_id}/request-resubmission",
                                json={"userId": user_id})

    async def get_game_stats(self, cohort_id: Optional[str] = None) -> Dict[str, Any]:
        return await self._get("/admin/stats", params=_cohort_params(cohort_id))

    # Modules

    async def get_all_modules(self, cohort_id: Optional[str] = None) -> Dict[str, Any]:
        return await self._get("/admin/modules", params=_cohort_params(cohort_id))

    async def create_module(self, module_number: int, title: str, description: str, cohort_id: str) -> Dict[str, Any]:
        return await self._post("/admin/modules", json={
            "moduleNumber": module_number,
            "title": title,
            "description": description,
            "cohortId": cohort_id,
        })

    async def update_module(self, module_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._put(f"/admin/modules/{module_id}", json=data)

    async def delete_module(self, module_id: str) -> None:
        """Modules have no delete endpoint; their questions must be deleted one by one."""
        parse_module_number(module_id)
        raise ValidationError("Module deletion not supported. Delete individual questions instead.",
                              details={"module_id": module_id})

    async def get_module_topics(self, module_id: str) -> Dict[str, List[Dict[str, Any]]]:
        """Topics of a module, derived from the full question list."""
        module_number = parse_module_number(module_id)
        payload = await self._get("/admin/questions")
        questions = payload.get("questions") or []
        # Questions without a module number belong to the first module
        topics = [
            question_to_topic(question, module_number)
            for question in questions
            if (question.get("moduleNumber") or 1) == module_number
        ]
        self.logger.debug("Derived module topics", module_number=module_number, topics=len(topics))
        return {"topics": topics}

    async def update_module_theme(self, module_id: str, theme: str) -> Dict[str, Any]:
        return await self._patch(f"/admin/modules/{module_id}/theme", json={"theme": theme})

    # Topics

    async def create_topic(self, module_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._post(f"/admin/modules/{module_id}/topics", json=data)

    async def update_topic(self, topic_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        payload = {field: data.get(field) for field in TOPIC_UPDATE_FIELDS}
        return await self._put(f"/admin/questions/{topic_id}", json=payload)

    async def get_topic_answers(self, topic_id: str) -> Dict[str, Any]:
        return await self._get(f"/admin/questions/{topic_id}/answers")

    async def release_topic(self, topic_id: str) -> Dict[str, Any]:
        return await self._post(f"/admin/questions/{topic_id}/release")

    async def delete_topic(self, topic_id: str) -> Dict[str, Any]:
        return await self._delete(f"/admin/questions/{topic_id}")

    # Questions

    async def get_all_questions(self, cohort_id: Optional[str] = None) -> Dict[str, Any]:
        return await self._get("/admin/questions", params=_cohort_params(cohort_id))

    async def get_question_answers(self, question_id: int) -> Dict[str, Any]:
        return await self._get(f"/admin/questions/{question_id}/answers")

    async def create_question(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._post("/admin/questions", json=data)

    async def update_question(self, question_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._put(f"/admin/questions/{question_id}", json=data)

    async def release_question(self, question_id: int) -> Dict[str, Any]:
        return await self._post(f"/admin/questions/{question_id}/release")

    async def delete_question(self, question_id: int) -> Dict[str, Any]:
        return await self._delete(f"/admin/questions/{question_id}")

    # Contents and mini-questions

    async def get_question_contents(self, question_id: str) -> Dict[str, Any]:
        return await self._get(f"/admin/questions/{question_id}/contents")

    async def create_content(self, question_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._post(f"/admin/questions/{question_id}/contents", json=data)

    async def update_content(self, content_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._put(f"/admin/contents/{content_id}", json=data)

    async def delete_content(self, content_id: str) -> Dict[str, Any]:
        return await self._delete(f"/admin/contents/{content_id}")

    async def create_mini_question(self, content_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._post(f"/admin/contents/{content_id}/mini-questions", json=data)

    async def update_mini_question(self, mini_question_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._put(f"/admin/mini-questions/{mini_question_id}", json=data)

    async def delete_mini_question(self, mini_question_id: str) -> Dict[str, Any]:
        return await self._delete(f"/admin/mini-questions/{mini_question_id}")

    async def get_mini_answers(self, mini_question_id: str) -> Dict[str, Any]:
        return await self._get(f"/admin/mini-questions/{mini_question_id}/answers")

    async def get_all_mini_answers(self, cohort_id: Optional[str] = None) -> Dict[str, Any]:
        return await self._get("/admin/mini-answers", params=_cohort_params(cohort_id))

    # Cohorts

    async def get_all_cohorts(self) -> Dict[str, Any]:
        return await self._get("/admin/cohorts")

    async def create_cohort(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._post("/admin/cohorts", json=data)

    async def update_cohort(self, cohort_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._patch(f"/admin/cohorts/{cohort_id}", json=data)

    async def delete_cohort(self, cohort_id: str) -> Dict[str, Any]:
        return await self._delete(f"/admin/cohorts/{cohort_id}")

    async def toggle_cohort_status(self, cohort_id: str) -> Dict[str, Any]:
        return await self._patch(f"/admin/cohorts/{cohort_id}/toggle-status")

    async def copy_cohort(self, cohort_id: str, new_name: str, new_cohort_number: int) -> Dict[str, Any]:
        """Clone a cohort's modules and settings under a new name and number."""
        return await self._post(f"/admin/cohorts/{cohort_id}/copy",
                                json={"newName": new_name, "newCohortNumber": int(new_cohort_number)})

    async def export_cohort(self, cohort_id: str) -> Dict[str, Any]:
        """Cohort details plus per-user progress rows (``cohort``, ``userData``)."""
        return await self._get(f"/admin/cohorts/{cohort_id}/export")

    async def get_cohort_users(self,
                               cohort_id: str,
                               status: Optional[str] = None,
                               page: Optional[int] = None,
                               limit: Optional[int] = None) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if status:
            params["status"] = status
        if page is not None:
            params["page"] = page
        if limit is not None:
            params["limit"] = limit
        return await self._get(f"/admin/cohort/{cohort_id}/users", params=params)

    async def get_users_with_cohorts(self) -> Dict[str, Any]:
        return await self._get("/admin/users-with-cohorts")

    async def assign_user_cohort(self, user_id: str, cohort_id: str) -> Dict[str, Any]:
        return await self._post("/admin/assign-user-cohort", json={"userId": user_id, "cohortId": cohort_id})

    async def update_user_cohort_status(self, user_id: str, cohort_id: str, status: str) -> Dict[str, Any]:
        return await self._put("/admin/user-cohort-status",
                               json={"userId": user_id, "cohortId": cohort_id, "status": status.upper()})

    async def graduate_user(self, user_id: str, cohort_id: str) -> Dict[str, Any]:
        return await self._post("/admin/graduate-user", json={"userId": user_id, "cohortId": cohort_id})

    # Email setup

    async def get_global_email_templates(self) -> Dict[str, Any]:
        return await self._get("/admin/email-setup/global-templates")

    async def get_global_email_template(self, email_type: str) -> Dict[str, Any]:
        return await self._get(f"/admin/email-setup/global-templates/{email_type}")

    async def update_global_email_template(self, email_type: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._put(f"/admin/email-setup/global-templates/{email_type}", json=data)

    async def get_cohort_email_configs(self, cohort_id: str) -> Dict[str, Any]:
        return await self._get(f"/admin/email-setup/cohorts/{cohort_id}/email-configs")

    async def get_cohort_email_config(self, cohort_id: str, email_type: str) -> Dict[str, Any]:
        return await self._get(f"/admin/email-setup/cohorts/{cohort_id}/email-configs/{email_type}")

    async def update_cohort_email_config(self, cohort_id: str, email_type: str,
                                         data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._put(f"/admin/email-setup/cohorts/{cohort_id}/email-configs/{email_type}", json=data)

    async def copy_global_email_templates(self, cohort_id: str, overwrite: bool = False) -> Dict[str, Any]:
        return await self._post(f"/admin/email-setup/cohorts/{cohort_id}/copy-global-templates",
                                json={"overwrite": overwrite})

    async def preview_email(self,
                            html_content: str,
                            colors: Optional[Dict[str, Any]] = None,
                            variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Render a template server-side; the result carries ``previewHtml``."""
        return await self._post("/admin/email-setup/preview", json={
            "htmlContent": html_content,
            "colors": colors or {},
            "variables": variables or {},
        })
