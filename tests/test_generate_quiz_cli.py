import json

from conftest import make_question
from medica_quiz.generator import GenerationErrorKind, GenerationResult
from tools.generate_quiz import EXIT_GENERATION_ERROR, EXIT_INPUT_ERROR, EXIT_OK, run

LONG_TEXT = "The mitral valve separates the left atrium from the left ventricle. " * 3


class StubGenerator:
    def __init__(self, result):
        self.result = result
        self.texts = []

    def generate_quiz(self, source_text):
        self.texts.append(source_text)
        return self.result


def write_source(tmp_path, text):
    path = tmp_path / "source.txt"
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_prints_quiz_json(tmp_path, capsys):
    stub = StubGenerator(GenerationResult.ok([make_question(1), make_question(2, "B")]))
    code = run([write_source(tmp_path, LONG_TEXT)], generator=stub)

    assert code == EXIT_OK
    data = json.loads(capsys.readouterr().out)
    assert [q["id"] for q in data["questions"]] == [1, 2]
    assert data["questions"][1]["correctAnswer"] == "B"
    assert stub.texts == [LONG_TEXT]


def test_writes_output_file(tmp_path):
    out = tmp_path / "quiz.json"
    stub = StubGenerator(GenerationResult.ok([make_question(1)]))
    code = run([write_source(tmp_path, LONG_TEXT), "--output", str(out)], generator=stub)

    assert code == EXIT_OK
    assert json.loads(out.read_text(encoding="utf-8"))["questions"][0]["id"] == 1


def test_short_text_is_rejected_before_generation(tmp_path, capsys):
    stub = StubGenerator(GenerationResult.ok([make_question(1)]))
    code = run([write_source(tmp_path, "   too short   ")], generator=stub)

    assert code == EXIT_INPUT_ERROR
    assert stub.texts == []


def test_missing_file(tmp_path):
    code = run([str(tmp_path / "nope.txt")], generator=StubGenerator(None))
    assert code == EXIT_INPUT_ERROR


def test_generation_error(tmp_path, capsys):
    stub = StubGenerator(
        GenerationResult.fail(GenerationErrorKind.INVALID_CREDENTIALS, "API key not valid")
    )
    code = run([write_source(tmp_path, LONG_TEXT)], generator=stub)

    assert code == EXIT_GENERATION_ERROR
    err = capsys.readouterr().err
    assert "API key not valid" in err
    assert "GEMINI_API_KEY" in err
