from datetime import datetime
from pathlib import Path
from typing import Callable

PROJECT_ROOT = Path(__file__).resolve().parents[1]
LOG_DIR = PROJECT_ROOT / "logs"


def build_log(name: str, log_dir: Path | None = None) -> Callable[[str], None]:
    """
    Return a log(msg) function that prints a timestamped line and appends it
    to logs/<name>.log.
    """
    log_path = (log_dir or LOG_DIR) / f"{name}.log"

    def log(msg: str) -> None:
        ts = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        line = f"{ts} | {msg}"
        print(line, flush=True)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with log_path.open("a", encoding="utf-8") as f:
            f.write(line + "\n")

    return log
