"""
JSON conversion helpers for result documents.
"""
from enum import Enum
from typing import Any

import numpy as np


def make_json_serializable(data: Any) -> Any:
    """
    Recursively convert a result document to plain JSON types.

    Analyzer statistics come out of numpy as numpy scalars, and result
    models carry enums; both are unwrapped here.

    Args:
        data: Result document, result model or value

    Returns:
        JSON serializable version of the data
    """
    if isinstance(data, np.ndarray):
        return [make_json_serializable(x) for x in data.tolist()]
    if isinstance(data, np.bool_):
        return bool(data)
    if isinstance(data, np.integer):
        return int(data)
    if isinstance(data, np.floating):
        return float(data)

    if isinstance(data, Enum):
        return make_json_serializable(data.value)
    if isinstance(data, dict):
        return {str(k): make_json_serializable(v) for k, v in data.items()}
    if isinstance(data, (list, tuple)):
        return [make_json_serializable(item) for item in data]
    if data is None or isinstance(data, (bool, int, float, str)):
        return data
    if hasattr(data, "to_dict"):
        return make_json_serializable(data.to_dict())
    return str(data)
