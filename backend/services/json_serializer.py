"""
JSON Serialization Helper - Converts datetimes, numpy/pandas scalars and non-finite floats to JSON-compatible values
"""

import json
import math
from dataclasses import asdict, is_dataclass
from datetime import datetime, date
from enum import Enum
import pandas as pd
import numpy as np


def serialize_for_json(obj):
    """
    Recursively convert non-JSON-serializable objects to strings or native types.

    Handles:
    - pandas Timestamp / datetime / date -> ISO format string
    - numpy types -> Python native types
    - NaN / inf / pandas NA -> None (JSON has no NaN)
    - Enum -> its value
    - dataclass -> dict (to_dict() when defined)
    - set / frozenset -> sorted list
    - dict/list/tuple -> recursively process
    """
    if isinstance(obj, (pd.Timestamp, datetime)):
        return obj.isoformat()
    elif isinstance(obj, date):
        return obj.isoformat()
    elif isinstance(obj, Enum):
        return obj.value
    elif isinstance(obj, bool) or obj is None or isinstance(obj, (str, int)):
        return obj
    elif isinstance(obj, float):
        return obj if math.isfinite(obj) else None
    # numpy scalars and arrays come from DataFrame-built values (pandas interop)
    elif isinstance(obj, (np.integer, np.floating)):
        return serialize_for_json(obj.item())
    elif isinstance(obj, np.ndarray):
        return [serialize_for_json(item) for item in obj.tolist()]
    elif is_dataclass(obj) and not isinstance(obj, type):
        if hasattr(obj, 'to_dict'):
            return serialize_for_json(obj.to_dict())
        return serialize_for_json(asdict(obj))
    elif isinstance(obj, dict):
        return {key: serialize_for_json(value) for key, value in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [serialize_for_json(item) for item in obj]
    elif isinstance(obj, (set, frozenset)):
        return sorted(serialize_for_json(item) for item in obj)
    elif pd.isna(obj):
        return None
    else:
        return obj


def safe_json_dumps(obj, **kwargs):
    """Safely convert object to JSON string, handling all pandas/datetime types"""
    serialized = serialize_for_json(obj)
    return json.dumps(serialized, default=str, **kwargs)
