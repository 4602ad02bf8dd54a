import json

import cv2
import httpx
import numpy as np
import pytest
from fastapi.testclient import TestClient

import quiz_layout.app as app_mod
import quiz_layout.cli as cli_mod
from quiz_layout.adb import Adb
from quiz_layout.answerer import Multimodal
from quiz_layout.app import app
from quiz_layout.cli import main
from quiz_layout.page import LayoutInvariantError


def _png(img):
    ok, buf = cv2.imencode(".png", img)
    assert ok
    return buf.tobytes()


def quiz_screenshot():
    img = np.full((2400, 1080, 3), 255, dtype=np.uint8)
    for top in (1200, 1340, 1480, 1620):
        cv2.rectangle(img, (140, top), (939, top + 119), (40, 40, 40), 3)
    return img


@pytest.fixture
def client():
    return TestClient(app)


class FakeRunner:
    def __init__(self, replies):
        self.replies = replies
        self.calls = []

    def __call__(self, cmd):
        self.calls.append(list(cmd))
        args = cmd[3:] if cmd[1:2] == ["-s"] else cmd[1:]
        return self.replies.get(" ".join(args), b"")


def _reply_handler(content):
    reply = {
        "choices": [{"message": {"content": content}}],
        "usage": {"prompt_tokens": 900, "completion_tokens": 5},
    }
    return lambda request: httpx.Response(200, json=reply)


@pytest.fixture
def api_env(monkeypatch):
    monkeypatch.setenv("QUIZ_LAYOUT_API_URL", "https://api.example.test/v1/chat/completions")
    monkeypatch.setenv("QUIZ_LAYOUT_API_MODEL", "vl-model")
    monkeypatch.setenv("QUIZ_LAYOUT_API_KEY", "sk-test")


class TestMatchEndpoint:
    def test_match(self, client):
        resp = client.post("/match", files={"file": ("shot.png", _png(quiz_screenshot()), "image/png")})

        assert resp.status_code == 200
        body = resp.json()
        assert body["matched"] is True
        assert len(body["choices"]) == 4
        assert body["core"]["width"] == 1080

    def test_no_match(self, client):
        blank = np.full((2400, 1080, 3), 255, dtype=np.uint8)
        resp = client.post("/match", files={"file": ("shot.png", _png(blank), "image/png")})

        assert resp.status_code == 200
        assert resp.json() == {"matched": False, "reason": "count", "candidates": []}

    def test_empty_upload(self, client):
        resp = client.post("/match", files={"file": ("shot.png", b"", "image/png")})
        assert resp.status_code == 400

    def test_not_an_image(self, client):
        resp = client.post("/match", files={"file": ("shot.png", b"not a png", "image/png")})
        assert resp.status_code == 400

    def test_invariant_error_is_422(self, client, monkeypatch):
        def boom(img):
            raise LayoutInvariantError("core height 20")

        monkeypatch.setattr(app_mod, "detect_layout", boom)
        resp = client.post("/match", files={"file": ("shot.png", _png(quiz_screenshot()), "image/png")})
        assert resp.status_code == 422


class TestCli:
    def test_usage(self):
        with pytest.raises(SystemExit) as exc:
            main(["quiz-layout"])
        assert exc.value.code == 2

    def test_missing_image(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            main(["quiz-layout", str(tmp_path / "missing.png")])

    def test_match_writes_outputs(self, tmp_path, monkeypatch):
        shot = tmp_path / "shot.png"
        cv2.imwrite(str(shot), quiz_screenshot())
        monkeypatch.chdir(tmp_path)

        assert main(["quiz-layout", str(shot)]) == 0

        data = json.loads((tmp_path / "outputs" / "shot.json").read_text(encoding="utf-8"))
        assert data["matched"] is True
        assert (tmp_path / "outputs" / "shot.jpg").exists()

    def test_failure_writes_candidates(self, tmp_path, monkeypatch):
        shot = tmp_path / "blank.png"
        cv2.imwrite(str(shot), np.full((800, 400, 3), 255, dtype=np.uint8))
        monkeypatch.chdir(tmp_path)

        assert main(["quiz-layout", str(shot)]) == 1

        data = json.loads((tmp_path / "outputs" / "blank.json").read_text(encoding="utf-8"))
        assert data == {"matched": False, "reason": "count", "candidates": []}
        assert cv2.imread(str(tmp_path / "outputs" / "blank.jpg")).shape == (800, 400, 3)

    def test_unknown_flag_rejected(self, tmp_path, monkeypatch):
        shot = tmp_path / "shot.png"
        cv2.imwrite(str(shot), quiz_screenshot())
        monkeypatch.chdir(tmp_path)

        with pytest.raises(SystemExit) as exc:
            main(["quiz-layout", str(shot), "--anwser"])
        assert exc.value.code == 2
        assert not (tmp_path / "outputs").exists()

    def test_log_level_from_env(self, monkeypatch):
        monkeypatch.setenv("QUIZ_LAYOUT_LOG_LEVEL", "debug")
        assert cli_mod.build_parser().parse_args([]).log_level == "DEBUG"

    def test_list_devices(self, monkeypatch, capsys):
        runner = FakeRunner({"devices": b"List of devices attached\n257bf64\tdevice\nemu\tunauthorized\n"})
        monkeypatch.setattr(cli_mod, "Adb", lambda path: Adb(path, runner=runner))

        assert main(["quiz-layout", "--devices"]) == 0
        out = capsys.readouterr().out
        assert "257bf64\tdevice" in out
        assert "emu\tunauthorized" in out

    def test_answer_closes_client(self, tmp_path, monkeypatch, api_env):
        shot = tmp_path / "shot.png"
        cv2.imwrite(str(shot), quiz_screenshot())
        monkeypatch.chdir(tmp_path)
        created = []

        def make_answerer(settings):
            answerer = Multimodal(settings)
            answerer.client.close()
            answerer.client = httpx.Client(transport=httpx.MockTransport(_reply_handler("C")))
            created.append(answerer)
            return answerer

        monkeypatch.setattr(cli_mod, "Multimodal", make_answerer)

        assert main(["quiz-layout", str(shot), "--answer"]) == 0
        assert created[0].client.is_closed

    def test_live_taps_answer(self, monkeypatch, api_env):
        runner = FakeRunner({
            "devices": b"List of devices attached\nemu\tunauthorized\n257bf64\tdevice\n",
            "exec-out screencap -p": _png(quiz_screenshot()),
        })
        monkeypatch.setattr(
            cli_mod, "Adb", lambda path: Adb(path, runner=runner, rng=np.random.default_rng(4))
        )
        monkeypatch.setattr(
            cli_mod, "Multimodal",
            lambda settings: Multimodal(
                settings, client=httpx.Client(transport=httpx.MockTransport(_reply_handler("答案：B")))
            ),
        )

        assert main(["quiz-layout", "--live", "--delay", "0"]) == 0

        taps = [c for c in runner.calls if c[3:6] == ["shell", "input", "tap"]]
        assert len(taps) == 1
        assert taps[0][:3] == ["adb", "-s", "257bf64"]
        x, y = int(taps[0][6]), int(taps[0][7])
        # option B is the second bar, drawn at rows 1340..1459
        assert 140 <= x <= 940
        assert 1340 <= y <= 1460

    def test_live_without_question(self, monkeypatch, api_env):
        blank = np.full((2400, 1080, 3), 255, dtype=np.uint8)
        runner = FakeRunner({"exec-out screencap -p": _png(blank)})
        monkeypatch.setattr(cli_mod, "Adb", lambda path: Adb(path, runner=runner))

        assert main(["quiz-layout", "--live", "--device", "257bf64", "--retries", "2", "--delay", "0"]) == 1
        assert [c[3:] for c in runner.calls] == [["exec-out", "screencap", "-p"]] * 2
