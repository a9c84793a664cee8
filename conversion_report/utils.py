import json
from pathlib import Path

import matplotlib.pyplot as plt


def ensure_dir(p: Path):
    p.mkdir(parents=True, exist_ok=True)
    return p


def savefig_safe(path: Path):
    plt.tight_layout()
    plt.savefig(path)
    plt.close()


def write_json(path: Path, obj):
    path.write_text(json.dumps(obj, indent=2, default=str))
