"""LessonHub: directory of instructional music businesses."""
