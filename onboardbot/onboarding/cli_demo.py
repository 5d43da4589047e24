"""Terminal chat client for the onboarding API.

Drives the HTTP endpoint the way the web UI does: fetch the opening
question, render message bubbles with a typing indicator and progress,
retry failed requests a few times, then walk through the review step.
"""

from __future__ import annotations

import os
import sys
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx

from .client import DEFAULT_API_URL, DEFAULT_TIMEOUT_S
from .prompts import MAX_QUESTIONS
from .schemas import MAX_RESPONSE_CHARS, SENDER_ASSISTANT, SENDER_USER

MAX_ATTEMPTS = 3


def _json_or_empty(resp: httpx.Response) -> Dict[str, Any]:
    try:
        data = resp.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


class OnboardingClient:
    """Request/response calls against the onboarding API."""

    def __init__(self, base_url: str = DEFAULT_API_URL, http: Optional[httpx.Client] = None) -> None:
        self.http = http or httpx.Client(base_url=base_url, timeout=httpx.Timeout(DEFAULT_TIMEOUT_S))

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        last_error: Optional[Exception] = None
        for _ in range(MAX_ATTEMPTS):
            try:
                resp = self.http.post(path, json=payload)
            except httpx.TransportError as e:
                last_error = e
                continue
            if resp.status_code >= 500:
                # Server fallback still carries a message we can show.
                data = _json_or_empty(resp)
                if data.get("message"):
                    return {"message": data["message"], "is_complete": False}
                last_error = RuntimeError(data.get("error") or f"HTTP {resp.status_code}")
                continue
            if resp.status_code >= 400:
                raise ValueError(_json_or_empty(resp).get("error") or f"HTTP {resp.status_code}")
            return resp.json()
        raise RuntimeError(f"Request to {path} failed after {MAX_ATTEMPTS} attempts") from last_error

    def send(self, user_id: str, response: Optional[str] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"user_id": user_id}
        if response is not None:
            payload["response"] = response
        return self._post("/onboarding", payload)

    def load_review(self, user_id: str) -> Dict[str, Any]:
        resp = self.http.get("/onboarding/review", params={"user_id": user_id})
        if resp.status_code >= 400:
            raise ValueError(_json_or_empty(resp).get("error") or f"HTTP {resp.status_code}")
        return resp.json()

    def accept_review(self, user_id: str, answers: List[str]) -> Dict[str, Any]:
        return self._post("/onboarding/review", {"user_id": user_id, "answers": answers})


def bubble(sender: str, text: str) -> str:
    if sender == SENDER_ASSISTANT:
        return f"🤖 Mentor: {text}"
    return f"{'':>8}You: {text}"


def progress_bar(count: int, total: int = MAX_QUESTIONS, width: int = 14) -> str:
    count = min(count, total)
    filled = round(width * count / total)
    return f"[{'#' * filled}{'.' * (width - filled)}] {count}/{total} questions"


def run_chat(
    client: OnboardingClient,
    user_id: str,
    read: Callable[[str], str] = input,
    write: Callable[[str], None] = print,
) -> Tuple[List[Dict[str, str]], bool]:
    """Chat until the server reports completion.

    Returns the transcript and whether the conversation finished.
    """
    write("Mentor is typing...")
    reply = client.send(user_id)
    transcript: List[Dict[str, str]] = []

    # A returning user resumes mid-conversation; count what is already stored.
    try:
        question_count = client.load_review(user_id)["question_count"]
    except (ValueError, httpx.HTTPError):
        question_count = 1

    while True:
        transcript.append({"sender": SENDER_ASSISTANT, "text": reply["message"]})
        write(bubble(SENDER_ASSISTANT, reply["message"]))
        write(progress_bar(question_count))

        if reply.get("is_complete"):
            return transcript, True

        while True:
            answer = read("> ").strip()
            if answer.lower() in ("exit", "quit"):
                return transcript, False
            if not answer:
                continue
            if len(answer) > MAX_RESPONSE_CHARS:
                write(f"Please keep answers under {MAX_RESPONSE_CHARS} characters.")
                continue
            write("Mentor is typing...")
            try:
                reply = client.send(user_id, answer)
            except (RuntimeError, ValueError) as e:
                write(f"Something went wrong. Please try again or type another answer. ({e})")
                continue
            break

        transcript.append({"sender": SENDER_USER, "text": answer})
        question_count += 1


def run_review(
    client: OnboardingClient,
    user_id: str,
    read: Callable[[str], str] = input,
    write: Callable[[str], None] = print,
) -> Dict[str, Any]:
    """Show each answer, let the user edit it, then accept."""
    review = client.load_review(user_id)
    write("\n--- Review Your Onboarding ---")
    answers: List[str] = []
    for m in review["messages"]:
        if m["sender_type"] == SENDER_ASSISTANT:
            write(bubble(SENDER_ASSISTANT, m["message"]))
            continue
        edited = read(f"Your answer [{m['message']}] (enter to keep): ").strip()
        answers.append(edited or m["message"])
    profile = client.accept_review(user_id, answers)
    write(
        f"\nSaved! grade={profile.get('grade_level')} interests={', '.join(profile.get('interests') or [])} "
        f"onboarded={profile.get('onboarded')}"
    )
    return profile


def run_cli(user_id: Optional[str] = None, base_url: Optional[str] = None) -> None:
    user_id = user_id or os.getenv("ONBOARD_USER_ID", "demo-user")
    client = OnboardingClient(base_url or DEFAULT_API_URL)

    print(f"Starting onboarding for user_id={user_id}\n")
    _, finished = run_chat(client, user_id)
    if finished:
        run_review(client, user_id)


if __name__ == "__main__":
    run_cli(sys.argv[1] if len(sys.argv) > 1 else None)
