from __future__ import annotations

from typing import Optional

_DIGITS = {
    "零": 0, "一": 1, "二": 2, "三": 3, "四": 4,
    "五": 5, "六": 6, "七": 7, "八": 8, "九": 9,
}

_SUFFIX_LETTERS = {"甲": "A", "乙": "B", "丙": "C"}

_ENGLISH_KINDS = {"Lecture", "Discussion", "Lab", "Homework", "Quiz", "Midterm", "Final", "Project"}

_KIND_PREFIXES = (
    ("作业", "Homework"),
    ("测验", "Quiz"),
    ("实验", "Lab"),
    ("讨论", "Discussion"),
    ("讲座", "Lecture"),
    ("项目", "Project"),
)


def chinese_num_to_int(text: str) -> Optional[int]:
    """Parse a Chinese numeral below one thousand, e.g. 二十一 -> 21."""
    if not text:
        return None
    if len(text) == 1:
        if text == "十":
            return 10
        return _DIGITS.get(text)

    result = 0
    i = 0
    if text[1] == "百" and text[0] in _DIGITS:
        result += _DIGITS[text[0]] * 100
        i = 2

    if i < len(text):
        if text[i] == "十":
            result += 10
            i += 1
        elif i + 1 < len(text) and text[i + 1] == "十":
            if text[i] in _DIGITS:
                result += _DIGITS[text[i]] * 10
                i += 2
        elif result == 0:
            return _DIGITS.get(text[i])

    if i < len(text) and text[i] in _DIGITS:
        result += _DIGITS[text[i]]

    return result if result > 0 else None


def translate_title_algorithmic(kind: str, title: str) -> str:
    """Translate numbered Chinese log titles, e.g. ("Lecture", "第二十一讲") -> "Lecture 21".

    Titles that match no known pattern are returned unchanged.
    """
    en_kind = kind if kind in _ENGLISH_KINDS else "Other"

    if title.startswith("第"):
        rest = title[1:]
        for marker in ("讲", "次"):
            if rest.endswith(marker):
                number = chinese_num_to_int(rest[:-1])
                if number is not None:
                    return f"{en_kind} {number}"

    for prefix, name in (("期中考试", "Midterm"), ("期末考试", "Final")):
        if title.startswith(prefix):
            rest = title[len(prefix):]
            if not rest:
                return name
            number = chinese_num_to_int(rest)
            if number is not None:
                return f"{name} {number}"

    for prefix, name in _KIND_PREFIXES:
        if not title.startswith(prefix):
            continue
        rest = title[len(prefix):]
        if not rest:
            return name
        letter = _SUFFIX_LETTERS.get(rest[-1])
        if letter:
            rest = rest[:-1]
        number = chinese_num_to_int(rest)
        if number is not None:
            return f"{name} {number}{letter or ''}"

    return title
