"""ハンドラー名とサブジェクト ID から決定的なバケット値を計算する"""

from __future__ import annotations

import hashlib
import math


def subject_text(subject_id: object) -> str:
    """サブジェクト ID をハッシュ入力用の文字列にする。

    bool は小文字、None は "null"、整数値の float は小数点なしにする。
    同じ ID は型の表現によらず同じバケットに入る。
    """
    if subject_id is None:
        return "null"
    if isinstance(subject_id, bool):
        return "true" if subject_id else "false"
    if isinstance(subject_id, float):
        if math.isnan(subject_id):
            return "NaN"
        if math.isinf(subject_id):
            return "Infinity" if subject_id > 0 else "-Infinity"
        if subject_id.is_integer() and abs(subject_id) < 1e21:
            return str(int(subject_id))
    return str(subject_id)


def bucket_key(handler_name: str, subject_id: object) -> str:
    """likelihood に渡す入力文字列を組み立てる。"""
    return f"{handler_name}{subject_text(subject_id)}"


def likelihood(value: str) -> float:
    """任意の文字列を [0, 100) の値に変換する。

    MD5 ダイジェスト (hex) の前半を整数として読み、同じ桁数の最大値で割る。
    同じ入力には常に同じ値を返す。
    """
    digest = hashlib.md5(value.encode("utf-8")).hexdigest()
    head = digest[: len(digest) // 2]
    n = int(head, 16)
    m = int("f" * len(head), 16)
    return n / m * 100
