"""
digitsum: 整数1つを受け取り、その「各桁の和」を出す小ツール

狙い：
- 「入力（CLI/env）→ 計算（純粋関数）→ 出力（stdout）」の流れを1本で通す
- 失敗は例外（UsageError / ParseError）で表し、CLI境界でまとめて stderr + 終了コード1 にする
- stdout は結果専用。進捗やエラーのログは stderr に寄せる

このツールがやること：
- 位置引数をちょうど1つ受け取る（0個 / 2個以上は使い方エラー）
- 32bit 符号付き整数として解釈する（範囲外・数字以外は解釈エラー）
- 絶対値の各桁を足して表示する（例: -123 -> 6）
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import re
import sys
from dataclasses import dataclass
from typing import Any

LOGGER_NAME = "digitsum"

# 元の実装の int 幅に合わせる（多倍長は扱わない）
INT_MIN = -(2**31)
INT_MAX = 2**31 - 1

USAGE_MESSAGE = "requires exactly one integer argument, no more no less"


# -------------------------
# 例外
# -------------------------


class DigitSumError(Exception):
    """digitsum が投げるエラーの基底クラス（CLI境界でまとめて捕まえる）。"""


class UsageError(DigitSumError):
    """位置引数の数が1つでないとき。"""


class ParseError(DigitSumError, ValueError):
    """引数を32bit符号付き整数として解釈できないとき。"""


# -------------------------
# CLIパース（I/O境界：入力）
# -------------------------


FLAG_OPTIONS = ("-h", "--help", "--json", "--verbose")


def split_flags(argv: list[str]) -> tuple[list[str], list[str]]:
    """
    argv を「argparse に渡すフラグ」と「それ以外（operands）」に分ける。

    - FLAG_OPTIONS に完全一致するものだけがフラグ
    - 省略形（--js）、値つき（--json=1）、まとめ書き（-hx）、負数（-123）は全部 operands
      → 数のチェック / 整数パースで落ちるので、argparse 独自の終了コード(2)にはならない
    - "--" 以降はすべて operands（"--" 自体は捨てる）
    """
    flags: list[str] = []
    operands: list[str] = []
    for i, token in enumerate(argv):
        if token == "--":
            operands.extend(argv[i + 1 :])
            break
        if token in FLAG_OPTIONS:
            flags.append(token)
        else:
            operands.append(token)
    return flags, operands


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    CLI引数を定義して、解析結果（args）を返す。

    argparse が見るのはフラグだけ。operands は split_flags で先に抜いておく。
    """
    if argv is None:
        argv = sys.argv[1:]
    flags, operands = split_flags(argv)

    parser = argparse.ArgumentParser(
        prog="digitsum",
        description="Print the sum of the decimal digits of one integer.",
        allow_abbrev=False,
    )

    parser.add_argument(
        "operands",
        nargs="*",
        default=[],
        help="対象の整数（ちょうど1つ）。負数も可（絶対値の桁を足す）。",
    )

    parser.add_argument("--json", action="store_true", help="結果をJSON形式で出力する")
    parser.add_argument("--verbose", action="store_true", help="処理中の詳細ログを表示する")

    args = parser.parse_args(flags)
    args.operands = operands
    return args


def parse_provided_options(argv: list[str] | None) -> set[str]:
    """
    どのフラグが CLI で明示されたかを集める。

    env はあくまで「未指定の項目を埋める」だけで、CLIで明示した値は上書きしない。
    """
    if argv is None:
        return set()
    flags, _ = split_flags(argv)
    return set(flags)


# -------------------------
# env適用（I/O境界：入力）
# -------------------------


def parse_bool(value: str) -> bool | None:
    """
    env用のboolパース。解釈できない文字列は None（呼び出し側で既定値を残す）。

    true: 1, true, yes, y, on
    false: 0, false, no, n, off
    """
    v = value.strip().lower()
    if v in {"1", "true", "yes", "y", "on"}:
        return True
    if v in {"0", "false", "no", "n", "off"}:
        return False
    return None


def get_env(name: str) -> str | None:
    """環境変数を取得する。空文字は「未設定」と同じ扱い。"""
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return None
    return v


def apply_env(args: argparse.Namespace, provided: set[str], logger: logging.Logger) -> None:
    """
    envの値を args に反映する（ただしCLI指定が優先）。

    対応する環境変数：
      DIGITSUM_JSON, DIGITSUM_VERBOSE
    """
    for option, attr, env_name in (
        ("--json", "json", "DIGITSUM_JSON"),
        ("--verbose", "verbose", "DIGITSUM_VERBOSE"),
    ):
        if option in provided:
            continue
        v = get_env(env_name)
        if v is None:
            continue
        parsed = parse_bool(v)
        if parsed is None:
            logger.warning("ignoring %s=%r (expected a boolean)", env_name, v)
            continue
        setattr(args, attr, parsed)

    logger.info("env applied (CLI overrides env)")


def setup_logger(verbose: bool) -> logging.Logger:
    """
    ログを stderr に出す logger を構成する。

    stdout は結果（数値 / JSON）専用にしたいので、ログは全部 stderr。
    何度呼んでもハンドラが重複しないように毎回付け直す。
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO if verbose else logging.WARNING)
    logger.propagate = False

    logger.handlers.clear()

    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    logger.addHandler(handler)
    return logger


# -------------------------
# データモデル（DTO）
# -------------------------


@dataclass(frozen=True)
class DigitSumResult:
    """
    1回ぶんの計算結果DTO。

    - text: 受け取った文字列そのまま
    - value: 解釈した整数
    - digit_sum: 絶対値の各桁の和
    """

    text: str
    value: int
    digit_sum: int


# -------------------------
# 計算（コアロジック）
# -------------------------


# int() は空白・改行・アンダースコア・全角数字も通してしまうので、先に形を絞る
# （$ は末尾の改行の手前でも一致するので、fullmatch で文字列全体を見る）
_INT_RE = re.compile(r"[+-]?[0-9]+")


def parse_int(text: str) -> int:
    """
    文字列を10進の32bit符号付き整数として解釈する。

    - 先頭に + / - を1つだけ許す。あとは ASCII の 0-9 のみ
    - 空文字、符号だけ、空白まじりなどは ParseError
    - INT_MIN..INT_MAX の外も ParseError（黙って丸めない）
    """
    if not _INT_RE.fullmatch(text):
        raise ParseError(f'For input string: "{text}"')

    value = int(text, 10)
    if value < INT_MIN or value > INT_MAX:
        raise ParseError(f'For input string: "{text}" (out of range {INT_MIN}..{INT_MAX})')
    return value


def digit_sum(number: int) -> int:
    """
    絶対値の各桁の和を返す。

    負数の % と // は言語ごとに符号の扱いが違うので、最初に abs() を取ってから回す。
    n は毎周 10 で割られて小さくなるので必ず 0 に届く。0 のときはループに入らず 0。
    """
    n = abs(number)
    s = 0
    while n != 0:
        s += n % 10
        n //= 10
    return s


def compute(operands: list[str]) -> DigitSumResult:
    """引数列から DigitSumResult を作る（数のチェック → パース → 計算）。"""
    if len(operands) != 1:
        raise UsageError(USAGE_MESSAGE)

    text = operands[0]
    value = parse_int(text)
    return DigitSumResult(text=text, value=value, digit_sum=digit_sum(value))


# -------------------------
# 出力（I/O境界：stdout）
# -------------------------


def build_json_payload(result: DigitSumResult) -> dict[str, Any]:
    """JSON用の辞書を組み立てる。"""
    return {
        "input": result.text,
        "value": result.value,
        "digit_sum": result.digit_sum,
    }


# -------------------------
# 実行フロー組み立て（入口を薄くする）
# -------------------------


def resolve_effective_args(argv: list[str] | None) -> tuple[argparse.Namespace, logging.Logger]:
    """
    CLI と env を統合して「最終的に使う args」を確定する。

    優先順位：CLI > env > 既定値
    """
    if argv is None:
        argv = sys.argv[1:]

    args = parse_args(argv)
    provided = parse_provided_options(argv)

    # まずはCLIのverboseで暫定loggerを作る（envでverboseが変わったら作り直す）
    logger = setup_logger(args.verbose)
    apply_env(args, provided, logger)

    logger = setup_logger(args.verbose)
    return args, logger


def main(argv: list[str] | None = None) -> int:
    """
    実行入口（テストからも呼べる形）。

    終了コード：
    - 0: 成功
    - 1: 使い方エラー / 解釈エラー（どちらも同じコードに揃える）
    """
    args, logger = resolve_effective_args(argv)
    logger.info("operands: %s", args.operands)

    try:
        result = compute(args.operands)
    except DigitSumError as exc:
        logger.info("failed: %s: %s", type(exc).__name__, exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    logger.info("digit sum of %d is %d", result.value, result.digit_sum)

    if args.json:
        print(json.dumps(build_json_payload(result), ensure_ascii=False))
        return 0

    print(result.digit_sum)
    return 0
