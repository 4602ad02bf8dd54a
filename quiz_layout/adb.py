import logging
import subprocess
from typing import Callable, List, NamedTuple, Optional, Sequence, Tuple
import cv2
import numpy as np

from .tap import random_point
from .types import Point, Rect

logger = logging.getLogger(__name__)


class AdbError(RuntimeError):
    pass


class Device(NamedTuple):
    serial: str
    authorized: bool


def run_command(cmd: Sequence[str]) -> bytes:
    out = subprocess.run(list(cmd), capture_output=True)
    if out.returncode != 0:
        logger.error(f"{' '.join(cmd)}: exit status {out.returncode}")
        raise AdbError(f"{' '.join(cmd)}\n{out.stderr.decode('utf-8', errors='replace')}")
    return out.stdout


def parse_devices(text: str) -> List[Device]:
    """Parse the output of ``adb devices``; the first line is a header."""
    devices: List[Device] = []
    for line in text.splitlines()[1:]:
        parts = line.split()
        if not parts:
            continue
        if line.rstrip().endswith("unauthorized"):
            devices.append(Device(parts[0], False))
        elif line.rstrip().endswith("device"):
            devices.append(Device(parts[0], True))
        else:
            logger.warning(f"Unknown device: {line}")
    return devices


def parse_screen_size(text: str) -> Tuple[int, int]:
    # "Physical size: 1080x2400", possibly followed by an "Override size" line
    size = text.split()[-1]
    w, h = (int(v) for v in size.split("x"))
    if w <= 0 or h <= 0:
        raise AdbError(f"Bad screen size: {text!r}")
    return w, h


class Adb:
    """Screen source and input sink of an Android device, through the adb tool."""

    def __init__(
            self,
            adb: str = "adb",
            device: str = "",
            runner: Callable[[Sequence[str]], bytes] = run_command,
            rng: Optional[np.random.Generator] = None,
        ):
        self.adb = adb
        self.device = device
        self.runner = runner
        self.rng = rng or np.random.default_rng()

    def set_device(self, device: str) -> None:
        self.device = device

    def shell(self, args: Sequence[str]) -> bytes:
        cmd = [self.adb]
        if self.device:
            cmd += ["-s", self.device]
        return self.runner(cmd + list(args))

    def devices(self) -> List[Device]:
        devices = parse_devices(self.shell(["devices"]).decode("utf-8", errors="replace"))
        logger.info(f"Devices: {devices}")
        return devices

    def screen_size(self) -> Tuple[int, int]:
        return parse_screen_size(self.shell(["shell", "wm", "size"]).decode("utf-8"))

    def screencap(self) -> np.ndarray:
        data = self.shell(["exec-out", "screencap", "-p"])
        img = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)
        if img is None:
            raise AdbError(f"Could not decode screenshot ({len(data)} bytes)")
        return img

    def tap(self, point: Point) -> None:
        self.shell(["shell", "input", "tap", str(point.x), str(point.y)])

    def tap_random(self, area: Rect) -> Point:
        point = random_point(area, self.rng)
        self.tap(point)
        return point
