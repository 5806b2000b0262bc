"""
Приведение имени таблицы к единственному числу (английский язык).

Используется для имён генерируемых процедур: [Beers] -> InsertBeer.
Это не полноценная морфология: таблица неизменяемых слов,
таблица исключений и упорядоченный список суффиксных правил.
"""

from __future__ import annotations

import re
from typing import Dict, List, Set, Tuple


class Singularizer:
    """Правила применяются по порядку, срабатывает первое подходящее."""

    # Слова без формы множественного числа
    UNINFLECTED: Set[str] = {
        "deer", "sheep", "fish", "moose", "swine", "bison", "salmon", "trout",
        "series", "species", "news", "equipment", "information", "rice",
        "money", "data", "metadata", "status",
    }

    # Исключения
    IRREGULAR: Dict[str, str] = {
        "people": "person",
        "men": "man",
        "women": "woman",
        "children": "child",
        "teeth": "tooth",
        "feet": "foot",
        "mice": "mouse",
        "geese": "goose",
        "oxen": "ox",
        "octopi": "octopus",
        "cacti": "cactus",
        "fungi": "fungus",
        "radii": "radius",
        "alumni": "alumnus",
        "indices": "index",
        "matrices": "matrix",
        "vertices": "vertex",
        "movies": "movie",
        "shoes": "shoe",
        "criteria": "criterion",
        "phenomena": "phenomenon",
    }

    # (шаблон, замена); шаблоны без учёта регистра
    RULES: List[Tuple[str, str]] = [
        (r"(wi|kni|li)ves$", r"\1fe"),
        (r"(wol|hal|cal|lea|shel|thie|loa|sel|el|dwar|scar|whar)ves$", r"\1f"),
        (r"(analy|ba|diagno|the|synop|parenthe|cri|progno)ses$", r"\1sis"),
        (r"(ss)es$", r"\1"),
        (r"(x|ch|sh|zz)es$", r"\1"),
        (r"(her|potat|tomat|ech|vet|torped)oes$", r"\1o"),
        (r"([^aeiou])ies$", r"\1y"),
        (r"(ss|us|is)$", r"\1"),
        (r"s$", ""),
    ]

    def __init__(self):
        self._rules = [(re.compile(p, re.IGNORECASE), r) for p, r in self.RULES]

    def singularize(self, word: str) -> str:
        if not word:
            return word

        lower = word.lower()
        if lower in self.UNINFLECTED:
            return word

        if lower in self.IRREGULAR:
            return _match_case(word, self.IRREGULAR[lower])

        for pattern, replacement in self._rules:
            if pattern.search(word):
                return pattern.sub(replacement, word, count=1)

        return word


def _match_case(original: str, replacement: str) -> str:
    if original.isupper():
        return replacement.upper()
    if original[:1].isupper():
        return replacement[:1].upper() + replacement[1:]
    return replacement


_default = Singularizer()


def singularize(word: str) -> str:
    return _default.singularize(word)
