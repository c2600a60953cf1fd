"""
services/interaction.py

순서 배열 문항의 드래그 앤 드롭 조작을 포인터 이벤트와 분리한 순수 함수.
"""

from typing import List, Sequence


def identity_order(n: int) -> List[int]:
    """미응답 순서 문항의 초기 순서 [0, 1, ..., n-1]."""
    return list(range(n))


def is_permutation(order: Sequence[int], n: int) -> bool:
    return sorted(order) == list(range(n)) and all(type(i) is int for i in order)


def reorder(order: Sequence[int], from_index: int, to_index: int) -> List[int]:
    """
    from_index 위치의 항목을 빼서 to_index 위치에 끼워 넣은 새 순서를 반환한다.

    원본은 바꾸지 않으며, 결과는 항상 입력과 같은 원소의 순열이다.

    Raises:
        IndexError: 위치가 범위를 벗어난 경우
    """
    n = len(order)
    if not (0 <= from_index < n) or not (0 <= to_index < n):
        raise IndexError(f"reorder 위치가 범위를 벗어났습니다: {from_index} → {to_index} (n={n})")

    result = list(order)
    item = result.pop(from_index)
    result.insert(to_index, item)
    return result
