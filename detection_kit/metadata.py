from __future__ import annotations

from typing import Dict, List, Sequence

# Class order of the bundled safety-equipment model (index == class id).
DEFAULT_CLASS_NAMES: List[str] = [
    "OxygenTank",
    "NitrogenTank",
    "FirstAidBox",
    "FireAlarm",
    "SafetySwitchPanel",
    "EmergencyPhone",
    "FireExtinguisher",
]


def load_class_names(metadata_path: str) -> Dict[int, str]:
    """
    Load class names from a lightweight `metadata.yaml` file:

        names:
          0: OxygenTank
          1: NitrogenTank
          ...

    Only the `names:` block is read, so PyYAML is not needed.
    """

    names: Dict[int, str] = {}
    in_names = False

    with open(metadata_path, "r", encoding="utf-8") as f:
        for raw in f:
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            if line == "names:":
                in_names = True
                continue
            if not in_names:
                continue
            # A new top-level key ends the block.
            if not raw[:1].isspace():
                break

            if ":" not in line:
                continue
            left, right = line.split(":", 1)
            left = left.strip()
            right = right.strip().strip("'").strip('"')
            if not left.isdigit():
                continue
            names[int(left)] = right

    return names


def names_to_list(names: Dict[int, str]) -> List[str]:
    """
    Dense list view of an id -> name mapping. Ids must be 0..N-1.
    """

    if not names:
        return []
    expected = list(range(len(names)))
    if sorted(names.keys()) != expected:
        raise ValueError(f"Class ids must be contiguous from 0, got {sorted(names.keys())}")
    return [names[i] for i in expected]


def class_name_for(class_names: Sequence[str], class_id: int) -> str:
    if 0 <= class_id < len(class_names):
        return class_names[class_id]
    return str(class_id)
