from pathlib import Path

import pandas as pd
import pytest

from catviz.core.data import load_mtcars


ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture
def mtcars() -> pd.DataFrame:
    return load_mtcars()


@pytest.fixture
def report_config_path() -> Path:
    return ROOT / "examples" / "configs" / "mtcars_bars.yaml"
