from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

from ..models.import_state import ImportState, ImportStep

"""Progress display service with tqdm (TTY only).

The pipeline reports a 0-100 percentage per ImportState. On a TTY this is
rendered as a single tqdm bar whose description follows the current step;
in non-TTY environments (CI, pipes) nothing is drawn.
"""

__all__ = [
    "ImportProgress",
    "is_tty_enabled",
    "STEP_LABELS",
]

STEP_LABELS = {
    ImportStep.UPLOADING: "Uploading",
    ImportStep.PREVIEW_VALIDATING: "Validating",
    ImportStep.IMPORTING: "Importing",
}


def is_tty_enabled() -> bool:
    """True if stdout is a TTY and progress should be displayed."""
    return sys.stdout.isatty()


class ImportProgress:
    """Percentage progress bar for a single import."""

    def __init__(self, file_name: str, *, description: str = "Import") -> None:
        self.file_name = file_name
        self.description = description
        self.percent = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=100,
                desc=f"{description} ({file_name})",
                unit="%",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def update(self, state: ImportState) -> None:
        """Move the bar to ``state.progress`` and label it with the state's step."""
        target = max(0, min(100, state.progress))
        # 戻り方向の更新は無視 (step 切替で 0 に戻るのは表示しない)
        delta = target - self.percent
        if delta > 0:
            self.percent = target
            if self.enabled and self.pbar is not None:
                self.pbar.update(delta)
        if self.enabled and self.pbar is not None:
            self.pbar.set_description(f"{STEP_LABELS[state.step]} ({self.file_name})")

    def set_postfix(self, **kwargs: Any) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.set_postfix(**kwargs)

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ImportProgress:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
