"""
tools/generate_quiz.py
===========================

テキストファイルから試験問題を生成し、JSON として出力するスクリプト。
画面を使わずに Gemini の出力を確認したいときに使う。

主な役割:
- config.toml / GEMINI_API_KEY を読み込む (AppConfig)
- 本文ファイル（"-" なら標準入力）を読み込む
- 文字数の下限チェック（画面と同じ基準）
- QuizGenerator で生成し、{"questions": [...]} を出力

前提:
- 環境変数 GEMINI_API_KEY に Google Gemini API キーが設定されている
- pip で `google-generativeai` がインストールされていること
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from medica_quiz.config import configure_logging, load_config
from medica_quiz.generator import QuizGenerator, source_text_error

logger = logging.getLogger("medica_quiz.tools.generate_quiz")

EXIT_OK = 0
EXIT_INPUT_ERROR = 1
EXIT_GENERATION_ERROR = 2


def read_source(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def run(argv: Optional[List[str]] = None, generator: Optional[QuizGenerator] = None) -> int:
    """
    引数を解釈して生成を 1 回実行し、終了コードを返す。

    generator を渡した場合はそれを使う（テスト用）。
    """
    parser = argparse.ArgumentParser(
        description="本文ファイルから四択試験を生成して JSON で出力する",
    )
    parser.add_argument("source", help="本文ファイルのパス（- で標準入力）")
    parser.add_argument(
        "--model",
        type=str,
        default=None,
        help="使用する Gemini モデル名（省略時は config.toml / 既定値）",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="出力先ファイル（省略時は標準出力）",
    )
    args = parser.parse_args(argv)

    cfg = load_config()
    configure_logging(cfg.log_level)

    try:
        text = read_source(args.source)
    except OSError as e:
        print(f"本文を読み込めません: {e}", file=sys.stderr)
        return EXIT_INPUT_ERROR

    if source_text_error(text, cfg.min_source_chars) is not None:
        print(
            f"本文が短すぎます（{cfg.min_source_chars} 文字以上必要です）。",
            file=sys.stderr,
        )
        return EXIT_INPUT_ERROR

    if generator is None:
        generator = QuizGenerator(
            api_key=cfg.gemini_api_key,
            model_name=args.model or cfg.gemini_model,
            temperature=cfg.temperature,
            timeout=cfg.request_timeout,
        )

    result = generator.generate_quiz(text)
    if not result.success or result.error is not None:
        message = result.error.message if result.error else "unknown error"
        print(f"生成に失敗しました: {message}", file=sys.stderr)
        if result.error is not None and result.error.is_credential_error:
            print("GEMINI_API_KEY を確認してください。", file=sys.stderr)
        return EXIT_GENERATION_ERROR

    payload = json.dumps(
        {"questions": [q.to_dict() for q in result.questions]},
        ensure_ascii=False,
        indent=2,
    )
    if args.output:
        Path(args.output).write_text(payload + "\n", encoding="utf-8")
        logger.info("%d 問を %s に書き出しました", len(result.questions), args.output)
    else:
        print(payload)
    return EXIT_OK


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
