"""
views/components/timer.py

남은 시험 시간 표시 컴포넌트.
5분 미만이면 긴급 스타일로 표시한다.
"""

from pydantic import BaseModel

from exam_engine.services.countdown import TimerReading


class TimerDisplay(BaseModel):
    text: str
    css_class: str
    icon: str
    remaining_seconds: int
    expired: bool


def render(reading: TimerReading) -> TimerDisplay:
    """
    남은 시간 표시.

    Args:
        reading: CountdownTimer.tick() / reading() 결과

    Returns:
        TimerDisplay — urgent 이면 timer-warning 클래스와 경고 아이콘
    """
    css_class = "timer-display timer-warning" if reading.urgent else "timer-display"
    icon = "⚠️" if reading.urgent else "⏱"
    return TimerDisplay(
        text=reading.display,
        css_class=css_class,
        icon=icon,
        remaining_seconds=reading.remaining_seconds,
        expired=reading.expired,
    )
