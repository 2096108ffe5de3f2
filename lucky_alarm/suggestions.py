from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from .scheduler import RandomSource, make_random_source

NOTIFICATION_TITLE = "Lucky Alarm"
FALLBACK_SUGGESTION = "すごい！たっぷり時間がある！"


@dataclass(frozen=True)
class SuggestionBand:
    min_minutes: int
    max_minutes: int
    texts: Tuple[str, ...]

    def matches(self, minutes: int) -> bool:
        return self.min_minutes <= minutes <= self.max_minutes


# Checked in order, first inclusive match wins.
SUGGESTION_BANDS: Tuple[SuggestionBand, ...] = (
    SuggestionBand(1, 5, ("ゆっくり深呼吸してみよう", "今日の目標を考えてみよう", "水を一杯飲もう")),
    SuggestionBand(6, 10, ("簡単なストレッチをしよう", "SNSをチェックできるよ", "お気に入りの音楽を1曲聴こう")),
    SuggestionBand(11, 20, ("しっかりストレッチできる！", "朝ごはんをゆっくり食べよう", "ニュースをチェックしよう")),
    SuggestionBand(21, 30, ("朝の散歩ができるよ！", "本を数ページ読めるね", "しっかり朝食を作ろう")),
    SuggestionBand(31, 60, ("朝活の時間だ！何でもできる！", "運動してから出かけられる", "趣味の時間に使おう")),
)


def suggest_for(
    minutes: int,
    draw: Optional[RandomSource] = None,
    bands: Tuple[SuggestionBand, ...] = SUGGESTION_BANDS,
) -> str:
    """Pick a way to spend ``minutes`` of gained time from the first matching band."""
    band = next((b for b in bands if b.matches(minutes)), None)
    if band is None:
        return FALLBACK_SUGGESTION
    if draw is None:
        draw = make_random_source()
    return band.texts[draw(0, len(band.texts) - 1)]


def build_notification(offset_minutes: int, draw: Optional[RandomSource] = None) -> dict:
    return {
        "title": NOTIFICATION_TITLE,
        "body": f"{offset_minutes}分得した！ {suggest_for(offset_minutes, draw)}",
    }
