from __future__ import annotations

import re


STANDARD_COURSES = ('1eso', '2eso', '3eso', '4eso', '1bach', '2bach')
CLASS_LETTERS = ('A', 'B', 'C', 'D', 'E', 'F', 'G')
STANDARD_CLASS_PATTERN = re.compile(r'^([1-4](?:eso|bach))-([A-G])$', re.IGNORECASE)

# Membership sentinels stored on users.
DEFAULT_SENTINEL = 'default'
PERSONAL_SENTINEL = 'personal'
MANAGEMENT_COURSE = 'management'


def class_key(name: str | None) -> str:
    return str(name or '').strip().casefold()


def parse_standard_name(name: str | None) -> tuple[str, str] | None:
    """Split ``4ESO-B`` into ``('4eso', 'B')``; custom names return None."""
    match = STANDARD_CLASS_PATTERN.match(str(name or '').strip())
    if not match:
        return None
    course = match.group(1).lower()
    if course not in STANDARD_COURSES:
        return None
    return course, match.group(2).upper()


def is_standard_name(name: str | None) -> bool:
    return parse_standard_name(name) is not None


def format_standard_name(course: str, letter: str) -> str:
    clean_course = str(course or '').strip().lower()
    clean_letter = str(letter or '').strip().upper()
    if clean_course not in STANDARD_COURSES:
        raise ValueError(f'Unknown course: {course}')
    if clean_letter not in CLASS_LETTERS:
        raise ValueError(f'Class letter must be one of {"".join(CLASS_LETTERS)}')
    return f'{clean_course.upper()}-{clean_letter}'


def membership_for_class(name: str) -> tuple[str, str]:
    """Return the ``(course, className)`` pair a member of ``name`` carries."""
    standard = parse_standard_name(name)
    if standard:
        return standard
    return MANAGEMENT_COURSE, str(name).strip()


def is_member_of_class(course: str | None, class_name: str | None, name: str) -> bool:
    expected_course, expected_class = membership_for_class(name)
    return (
        class_key(course) == class_key(expected_course)
        and class_key(class_name) == class_key(expected_class)
    )


def is_unassigned(course: str | None, class_name: str | None) -> bool:
    sentinels = {DEFAULT_SENTINEL, PERSONAL_SENTINEL, ''}
    return class_key(course) in sentinels and class_key(class_name) in sentinels
