"""Cochrane topic names and their ``topic_id`` facet tokens."""

from __future__ import annotations

import html
import json
import logging
import re
from collections.abc import Iterable
from pathlib import Path
from types import MappingProxyType

from rapidfuzz import fuzz

from models import Topic

LOGGER = logging.getLogger(__name__)

DEFAULT_MATCH_THRESHOLD = 80.0

# Facet ids as issued by cochranelibrary.com (Browse > Topics).
COCHRANE_TOPICS: tuple[Topic, ...] = (
    Topic("Allergy & intolerance", "z1506030924307755598196034641807"),
    Topic("Blood disorders", "z1209270503555436197730382260671"),
    Topic("Cancer", "z1209270504325056240433870825568"),
    Topic("Child health", "z1209270506397401105880747733814"),
    Topic("Complementary & alternative medicine", "z1209270517013654280662502828396"),
    Topic("Consumer & communication strategies", "z1209270520546298433878661077335"),
    Topic("Dentistry & oral health", "z1209270521308609304428063247054"),
    Topic("Developmental, psychosocial & learning problems", "z1209270522125408101510869314290"),
    Topic("Diagnosis", "z1306131057021224666154337161576"),
    Topic("Ear, nose & throat", "z1209270522463875219228418874346"),
    Topic("Effective practice & health systems", "z1209270523266078530882748723362"),
    Topic("Endocrine & metabolic", "z1209270524042325670929098616351"),
    Topic("Eyes & vision", "z1209270524406271065891754655665"),
    Topic("Gastroenterology & hepatology", "z1209270525153683793351219115280"),
    Topic("Genetic disorders", "z1209270527346428439245515123767"),
    Topic("Gynaecology", "z1209270528090177085579134391608"),
    Topic("Health & safety at work", "z1305131036229293292321438818383"),
    Topic("Health professional education", "z1702221407285233729667009826083"),
    Topic("Heart & circulation", "z1209270530155810435593455227522"),
    Topic("Infectious disease", "z1209270532564255913630615179455"),
    Topic("Insurance medicine", "z1812202128257763601894499966737"),
    Topic("Kidney disease", "z1209270536031876257941944572357"),
    Topic("Lungs & airways", "z1209270536574680511905632880005"),
    Topic("Mental health", "z1209270540006671523997579560781"),
    Topic("Methodology", "z1209270542227710303774307877038"),
    Topic("Neonatal care", "z1209270542317057954205935715994"),
    Topic("Neurology", "z1209270544087566967307064976193"),
    Topic("Orthopaedics & trauma", "z1209270547455450673659035855752"),
    Topic("Pain & anaesthesia", "z1209270502385005468487254367079"),
    Topic("Pregnancy & childbirth", "z1209270550029507560491602193368"),
    Topic("Public health", "z1209270552392347897765250778146"),
    Topic("Reproductive & sexual health", "z2007290642474121761163844119430"),
    Topic("Rheumatology", "z1209270552574982854088789647107"),
    Topic("Skin disorders", "z1209270554134846850298301128418"),
    Topic("Tobacco, drugs & alcohol", "z1209270555015401529060096109128"),
    Topic("Urology", "z1209270555433404138993999813829"),
    Topic("Wounds", "z1209270556296734575921098026769"),
)

_AMPERSAND_RE = re.compile(r"\s*&\s*")


def normalize_topic_name(name: str) -> str:
    """Lower-case, unescape entities, space ``&`` uniformly, collapse whitespace."""
    value = html.unescape(name).lower()
    value = _AMPERSAND_RE.sub(" & ", value)
    return " ".join(value.split())


class TopicIndex:
    """Immutable name -> id lookup with a fuzzy fallback."""

    def __init__(self, topics: Iterable[Topic], threshold: float = DEFAULT_MATCH_THRESHOLD) -> None:
        index = {
            normalize_topic_name(topic.name): topic.id
            for topic in topics
            if topic.name and topic.id
        }
        self._index = MappingProxyType(index)
        self.threshold = threshold

    def __len__(self) -> int:
        return len(self._index)

    def resolve(self, name: str) -> str | None:
        """Return the topic id for a name, or None when nothing is close enough."""
        key = normalize_topic_name(name)
        if not key:
            return None

        exact = self._index.get(key)
        if exact is not None:
            return exact

        best_id: str | None = None
        best_score = 0.0
        for title_key, topic_id in self._index.items():
            score = fuzz.ratio(key, title_key)
            if score > best_score:
                best_score = score
                best_id = topic_id

        if best_score >= self.threshold:
            LOGGER.info("Fuzzy topic match for %r (score=%.1f)", name, best_score)
            return best_id
        LOGGER.warning("No topic id for %r (best score=%.1f < %.1f)", name, best_score, self.threshold)
        return None


def load_topic_index(path: str | Path | None = None, threshold: float = DEFAULT_MATCH_THRESHOLD) -> TopicIndex:
    """Build the topic index from a JSON list of ``{"id", "title"}`` rows or the built-in table."""
    if path is None:
        return TopicIndex(COCHRANE_TOPICS, threshold=threshold)

    with Path(path).open(encoding="utf-8") as fh:
        rows = json.load(fh)
    if not isinstance(rows, list):
        raise RuntimeError(f"Unexpected topics file shape in {path}: expected a list")

    topics = [
        Topic(name=str(row.get("title", "")), id=str(row.get("id", "")))
        for row in rows
        if isinstance(row, dict)
    ]
    LOGGER.info("Loaded %s topics from %s", len(topics), path)
    return TopicIndex(topics, threshold=threshold)
