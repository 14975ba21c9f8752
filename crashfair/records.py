import json
import math
from typing import Iterable, List

import pandas as pd

from .config import DEFAULT_CONFIG, FairnessConfig
from .errors import ValidationError
from .fair import verify

COLUMNS = ["round_id", "state", "commitment_hash", "contributions", "operator_seed",
           "final_multiplier", "resolved_at", "revealed_at", "algorithm", "failure"]
_TEXT = {c: str for c in COLUMNS if c != "final_multiplier"}


def _clean(value):
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def write_records(path: str, records: Iterable[dict]) -> int:
    recs = list(records)
    if path.lower().endswith('.csv'):
        df = pd.DataFrame(recs, columns=COLUMNS)
        df["contributions"] = [json.dumps(c if isinstance(c, list) else []) for c in df["contributions"]]
        df.to_csv(path, index=False)
    elif path.lower().endswith('.json'):
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(recs, f, indent=2)
    else:
        raise ValueError('Unsupported output format; use CSV or JSON')
    return len(recs)


def load_records(path: str) -> List[dict]:
    if path.lower().endswith('.csv'):
        df = pd.read_csv(path, dtype=_TEXT)
        if "commitment_hash" not in df.columns:
            raise ValueError(f"Missing 'commitment_hash' in {path}")
        recs = [{k: _clean(v) for k, v in row.items()} for row in df.to_dict(orient='records')]
        for rec in recs:
            rec["contributions"] = json.loads(rec.get("contributions") or "[]")
        return recs
    if path.lower().endswith('.json'):
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        # Accept a bare list or {"records": [...]}
        return data if isinstance(data, list) else data.get('records', [])
    raise ValueError(f'Unsupported input file: {path}')


def audit_records(records: Iterable[dict], config: FairnessConfig = DEFAULT_CONFIG) -> pd.DataFrame:
    rows = []
    for rec in records:
        seed = rec.get("operator_seed")
        if not seed:
            outcome = "unrevealed"
        else:
            try:
                outcome = verify(seed, rec.get("contributions") or [], rec.get("commitment_hash") or "",
                                 rec.get("final_multiplier"), config).value
            except ValidationError as exc:
                outcome = f"invalid: {exc}"
        rows.append({"round_id": rec.get("round_id"), "final_multiplier": rec.get("final_multiplier"),
                     "outcome": outcome})
    return pd.DataFrame(rows, columns=["round_id", "final_multiplier", "outcome"])
