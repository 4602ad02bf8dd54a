import os
from dataclasses import dataclass
from typing import Dict, Optional

# Matcher thresholds, tuned against real captures of the quiz screen.
LAYOUT_THRESH = {
    "nms_iou": 0.6,
    "aspect_min": 5.0,
    "aspect_max": 8.0,
    "choice_count": 4,
    "max_width_spread": 3,
    "max_left_spread": 3,
    "max_gap": 3,
    "density_threshold": 42,   # contour points per row to count as content
    "core_align": 28,
}

# Canny (low, high)
EDGE_THRESH = (50, 150)

ANSWER_LETTERS = "ABCD"

TAP_INSET_RATE = 6
TAP_STD_DEV = 0.25

ANSWER_PROMPT = (
    "回答图片里的选择题。你的回答会被代码解析，只需要回答选项，不需要多余的解释。"
    "需要保证正确性，不能随便回答。如果不确定答案，请回答正确的可能性最大的那个，"
    "即使不确定也不需要任何解释和说明"
)
ANSWER_MARKER = "答案"

ENV_PREFIX = "QUIZ_LAYOUT_"


@dataclass
class ApiSettings:
    url: str
    model: str
    key: str
    cost_input: float = 1.5     # USD per million prompt tokens
    cost_output: float = 4.5    # USD per million completion tokens
    timeout: float = 60.0

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "ApiSettings":
        env = os.environ if environ is None else environ

        def required(name: str) -> str:
            value = env.get(ENV_PREFIX + name, "").strip()
            if not value:
                raise ValueError(f"Environment variable '{ENV_PREFIX + name}' is not set.")
            return value

        return cls(
            url=required("API_URL"),
            model=required("API_MODEL"),
            key=required("API_KEY"),
            cost_input=float(env.get(ENV_PREFIX + "API_COST_INPUT", 1.5)),
            cost_output=float(env.get(ENV_PREFIX + "API_COST_OUTPUT", 4.5)),
        )
