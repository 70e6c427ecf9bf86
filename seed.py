"""Wipe the portal collections and load the demo dataset.

    python seed.py
"""
import logging
from datetime import timedelta

from database import close_db, connect_db
from logging_config import setup_logging
from models import Announcement, Author, Question, Quiz, User, utcnow

logger = logging.getLogger("portal.seed")

AVATAR = "https://picsum.photos/150"


def seed_data():
    Announcement.objects.delete()
    Quiz.objects.delete()
    User.objects.delete()

    user = User(name="Talia", email="student@anyware.com", avatar=AVATAR, role="student")
    user.save()
    created_by = str(user.id)

    announcements = [
        Announcement(
            title="Hi my heroes! I just want you ready for exams...",
            content="Hi my heroes! I just want you ready for exams. Make sure to review all the "
                    "materials we covered this semester. Good luck everyone!",
            author=Author(name="Mr. Ahmed Mostafa", avatar=AVATAR, role="teacher"),
            subject="Math 101", course="Mathematics", type="academic", priority="high",
            created_by=created_by,
        ),
        Announcement(
            title="Hello my students, I want to announce that...",
            content="Hello my students, I want to announce that the final exam schedule has been "
                    "updated. Please check your emails for the new schedule.",
            author=Author(name="Mrs. Salma Ahmed", avatar=AVATAR, role="teacher"),
            subject="Physics 02", course="Physics", type="academic", priority="medium",
            created_by=created_by,
        ),
        Announcement(
            title="Goooooooooood morning, Warriors!",
            content="Goooooooooood morning, Warriors! We have some exciting news about the "
                    "upcoming semester. Stay tuned for more updates.",
            author=Author(name="School management", avatar=AVATAR, role="management"),
            type="general", priority="low",
            created_by=created_by,
        ),
        Announcement(
            title="Hellooo, Can't wait for our upcoming trip...",
            content="Hellooo, Can't wait for our upcoming trip to the science museum. It's going "
                    "to be an amazing experience for everyone!",
            author=Author(name="Events Manager", avatar=AVATAR, role="admin"),
            type="event", priority="medium",
            created_by=created_by,
        ),
    ]

    now = utcnow()
    quizzes = [
        Quiz(
            title="Unit 2 quiz",
            description="Quiz covering Unit 2 material on motion and forces",
            course="Physics 02", subject="Physics", topic="Unit 2. Motion and forces",
            type="quiz", due_date=now + timedelta(days=14), duration=60, total_points=100,
            instructions="Complete all questions within the time limit. Show your work for full credit.",
            questions=[
                Question(question="What is the SI unit of force?",
                         options=["Newton", "Joule", "Watt", "Pascal"], correct_answer=0),
                Question(question="Which of the following is a vector quantity?",
                         options=["Mass", "Temperature", "Velocity", "Time"], correct_answer=2),
            ],
        ),
        Quiz(
            title="12-12 Assignment",
            description="Arabic text assignment for B12 level",
            course="Arabic B12", subject="Arabic", topic="Arabic text shown in Arabic font",
            type="assignment", due_date=now + timedelta(days=14), total_points=50,
            instructions="Complete the Arabic text assignment. Make sure to use proper Arabic font and grammar.",
            questions=[
                Question(question="Write a paragraph about your daily routine in Arabic",
                         options=["Submitted", "Not submitted"], correct_answer=0),
            ],
        ),
        Quiz(
            title="Final Exam - Mathematics",
            description="Comprehensive final exam covering all topics",
            course="Math 101", subject="Mathematics", topic="Comprehensive Review",
            type="quiz", due_date=now + timedelta(days=19), duration=120, total_points=200,
            instructions="This is a comprehensive final exam. You have 2 hours to complete all sections.",
            questions=[
                Question(question="What is the derivative of x²?",
                         options=["x", "2x", "x²", "2x²"], correct_answer=1),
                Question(question="What is the integral of 2x?",
                         options=["x²", "x² + C", "2x²", "2x² + C"], correct_answer=1),
                Question(question="What is the value of π (pi)?",
                         options=["3.14", "3.14159", "22/7", "All of the above"], correct_answer=3),
            ],
        ),
    ]

    for document in announcements + quizzes:
        document.save()

    logger.info(f"Created {len(announcements)} announcements, {len(quizzes)} quizzes and 1 user")
    return user, announcements, quizzes


if __name__ == "__main__":
    setup_logging()
    connect_db()
    try:
        seed_data()
    finally:
        close_db()
