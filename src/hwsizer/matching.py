"""
Document-type matching for parsed benchmark labels.

Labels come out of OCR/LLM parsing, so they carry spacing differences and the
occasional transcription slip. Matching is: whitespace-insensitive equality,
then a synonym table, then Levenshtein similarity above a threshold.
"""
from __future__ import annotations

import re
from typing import Iterable, Optional

from .utils import levenshtein


DOCUMENT_TYPES = (
    "진료비 영수증",
    "진료비 세부내역서",
    "진료비 납입확인서",
    "처방전",
    "진단서",
    "펫보험영수증",
    "렌터카청구서",
    "약제비영수증",
    "치과치료 확인서",
    "보험금청구서",
    "개인정보동의서",
    "개인(신용)정보처리",
    "수술기록지",
    "조직검사결과지",
    "신규양식",
)

DOCUMENT_TYPE_SYNONYMS = {
    "진단소견서": "진단서",
    "소견서": "진단서",
    "진단 소견서": "진단서",
}

DEFAULT_THRESHOLD = 0.95


def remove_spaces(text: str) -> str:
    return re.sub(r"\s+", "", text)


def normalize_document_type(doc_type: str) -> str:
    compact = remove_spaces(doc_type)
    for synonym, canonical in DOCUMENT_TYPE_SYNONYMS.items():
        if compact == remove_spaces(synonym):
            return canonical
    return doc_type


def similarity(a: str, b: str) -> float:
    s1 = remove_spaces(a.lower())
    s2 = remove_spaces(b.lower())
    if s1 == s2:
        return 1.0
    longest = max(len(s1), len(s2))
    if min(len(s1), len(s2)) == 0:
        return 0.0
    return 1.0 - levenshtein(s1, s2) / longest


def match_document_type(
    candidate: Optional[str],
    target: str,
    threshold: float = DEFAULT_THRESHOLD,
) -> bool:
    if not candidate:
        return False
    left = normalize_document_type(candidate)
    right = normalize_document_type(target)
    if remove_spaces(left) == remove_spaces(right):
        return True
    return similarity(left, right) >= threshold


def best_match(
    candidate: Optional[str],
    targets: Iterable[str] = DOCUMENT_TYPES,
    threshold: float = DEFAULT_THRESHOLD,
) -> Optional[str]:
    if not candidate:
        return None
    best, best_score = None, 0.0
    for target in targets:
        score = similarity(normalize_document_type(candidate), normalize_document_type(target))
        if score > best_score:
            best, best_score = target, score
    return best if best_score >= threshold else None
