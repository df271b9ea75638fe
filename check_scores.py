#!/usr/bin/env python3
"""Check the scores stored for a user's latest interview."""

import asyncio
import sys
from app.database import Database


async def check_scores(user_id: str):
    """Print the latest interview session of ``user_id`` with its answers."""
    await Database.connect()

    session = await Database.db.interview_sessions.find_one(
        {"user_id": user_id},
        sort=[("created_at", -1)]
    )

    if not session:
        print(f"❌ No interview sessions found for user {user_id}")
        await Database.disconnect()
        return

    print(f"📝 Interview Session: {session['_id']}")
    print(f"   Resume: {session.get('resume_name', 'N/A')}")
    print(f"   Status: {session.get('status')}")
    print(f"   Total Score: {session.get('total_score', 'N/A')}/{session.get('max_score', 'N/A')}")
    print(f"   Graded At: {session.get('graded_at', 'not graded')}")

    questions = await Database.db.interview_questions.find(
        {"session_id": session["_id"]}
    ).sort("order", 1).to_list(length=None)
    answers = {
        a["question_id"]: a
        for a in await Database.db.interview_answers.find(
            {"session_id": session["_id"], "user_id": user_id}
        ).to_list(length=None)
    }

    print(f"\n✅ Questions ({len(questions)}):")
    for question in questions:
        answer = answers.get(question["_id"])
        print(f"   [{question['order']}] {question['category']}: {question['text'][:60]}...")
        if answer is None:
            print("       - not answered")
        elif answer.get("timed_out"):
            print("       - timed out")
        else:
            print(f"       - Score: {answer.get('score', 'N/A')}/{question.get('max_score', 10)}")
            feedback = answer.get("ai_feedback") or "N/A"
            print(f"         Feedback: {feedback[:60]}...")

    await Database.disconnect()


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python check_scores.py <user_id>")
        sys.exit(1)
    asyncio.run(check_scores(sys.argv[1]))
