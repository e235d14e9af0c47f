"""QuizArchive - browse, upload and request past quizzes and exams."""

__version__ = "0.1.0"
