"""Content generation for quizzes, cheat sheets and tutor chat.

The store only talks to the ``ContentGenerator`` protocol. ``TemplateGenerator``
fills fixed templates and is what the app uses until a real model backend is
plugged in.
"""
import random
from typing import Protocol


class ContentGenerator(Protocol):
    def generate_questions(self, subject_id: str, topic: str, difficulty: str, count: int) -> list[dict]:
        """Return ``count`` dicts with text, options, correct_index and explanation."""
        ...

    def generate_cheat_sheet_content(self, topic: str) -> str: ...

    def generate_chat_reply(self, message: str) -> str: ...


QUIZ_OPTIONS = [
    "Option A - Basic understanding",
    "Option B - Advanced concept",
    "Option C - Intermediate level",
    "Option D - Expert knowledge",
]

CHEAT_SHEET_TEMPLATE = """# {topic} Study Guide

## Key Concepts
- Fundamental principles
- Important definitions
- Core methodologies

## Quick Reference
- Essential formulas
- Important dates
- Key figures

## Practice Points
- Common mistakes to avoid
- Exam tips
- Memory techniques

This cheat sheet was generated to help you study {topic} effectively."""

CHAT_OPENERS = [
    "That's an interesting question! Let me help you understand this concept better.",
    "Great question! Here's what you need to know about this topic.",
    "I can help you with that. Let's break it down step by step.",
    "This is a common area where students need clarification. Here's the explanation:",
    "Perfect timing for this question! This concept is important for your studies.",
]


class TemplateGenerator:
    def __init__(self, rng: random.Random | None = None):
        self.rng = rng or random.Random()

    def generate_questions(self, subject_id: str, topic: str, difficulty: str, count: int) -> list[dict]:
        return [
            {
                "text": f"What is the main concept of {topic}? (Question {i + 1})",
                "options": list(QUIZ_OPTIONS),
                "correct_index": self.rng.randrange(len(QUIZ_OPTIONS)),
                "explanation": (
                    f"This question tests your understanding of {topic}. "
                    "The correct answer provides the most comprehensive explanation."
                ),
            }
            for i in range(count)
        ]

    def generate_cheat_sheet_content(self, topic: str) -> str:
        return CHEAT_SHEET_TEMPLATE.format(topic=topic)

    def generate_chat_reply(self, message: str) -> str:
        opener = self.rng.choice(CHAT_OPENERS)
        return (
            f'{opener} For the topic of "{message}", I recommend focusing on the '
            "fundamental principles and practicing with related questions."
        )
