# -*- coding: utf-8 -*-
"""Utilities for saving load test sessions.

Directory Structure
-----------------
Data is saved in a hierarchical structure:
<save_dir>/<YYYY>/<YYYY-MM>/<YYYY-MM-DD>_<project_name>/

Directory Selection Logic
-----------------------
- Empty project_name: Always creates/uses directory for current day
- Named project: Reuses most recent matching directory to keep related tests together

File Naming
----------
Files within directories use 4-digit counters (0000-9999):
<counter>_loadtest.<extension>

Example: 0000_loadtest.json, 0000_loadtest.csv
"""

from __future__ import annotations

import csv
import glob
import os
import sys
import time
import typing
from datetime import datetime

import simplejson as json
from loguru import logger

if typing.TYPE_CHECKING:
    from loadscope.session.state import Sample
    from loadscope.types import TestMetadata

SAVE_TYPE = "loadtest"


def get_command_string() -> str:
    """Get the original command string that was used to run this script."""
    return " ".join(sys.argv)


def _get_latest_directory(root_dir: str, project_name: str) -> str:
    """Get the most recent directory matching our date format and project name.

    Returns the most recently created matching directory, regardless of date,
    or an empty string if none is found.
    """
    date_pattern = os.path.join(
        root_dir,
        "[0-9][0-9][0-9][0-9]/[0-9][0-9][0-9][0-9]-[0-9][0-9]/[0-9][0-9][0-9][0-9]-[0-9][0-9]-[0-9][0-9]_"
        + project_name,
    )
    directories = glob.glob(date_pattern)

    if not directories:
        return ""  # won't match to anything

    return max(directories, key=os.path.getctime)


def _get_dir(save_dir: str, project_name: str = "") -> str:
    data_root = os.path.abspath(os.path.expanduser(save_dir))

    if project_name:
        latest_dir = _get_latest_directory(data_root, project_name)
        if latest_dir:
            return latest_dir

    date = time.strftime("%Y/%Y-%m/%Y-%m-%d_")
    return os.path.normpath(os.path.join(data_root, date + project_name))


def _get_path(dr: str, save_type: str) -> str:
    """Generate a numbered path (no extension) for a new file in `dr`.

    Raises
    ------
    ValueError
        If directory already contains 9999 files
    """
    counter = 0
    file_list = os.listdir(dr)
    while True:
        check_str = f"{counter:04}"  # leading zeros e.g. 0001, 0002, ...
        if not any(filter(lambda x: x.startswith(check_str), file_list)):
            break
        counter += 1
        if counter > 9999:
            raise ValueError("Too many files in directory")
    return os.path.join(dr, f"{counter:04}_{save_type}")


def _save_csv(samples: typing.Sequence[Sample], base_path: str) -> str:
    path = base_path + ".csv"
    with open(path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["timestamp", "load_t", "load_kn"])
        for sample in samples:
            writer.writerow(
                [sample.timestamp, f"{sample.load_tons:.3f}", f"{sample.load_kn:.2f}"]
            )
    return path


def _save_json(
    samples: typing.Sequence[Sample],
    peak: float,
    metadata: TestMetadata | None,
    base_path: str,
) -> str:
    path = base_path + ".json"
    with open(path, "w") as f:
        json.dump(
            {
                "saved_at": datetime.now().isoformat(timespec="seconds"),
                "command": get_command_string(),
                "peak_t": peak,
                "n_samples": len(samples),
                "samples": [
                    {"timestamp": s.timestamp, "load_t": s.load_tons} for s in samples
                ],
                "metadata": metadata.to_dict() if metadata is not None else None,
            },
            f,
            indent=4,
            allow_nan=True,
        )
    return path


def save_session(
    samples: typing.Sequence[Sample],
    peak: float,
    save_dir: str,
    project_name: str = "",
    metadata: TestMetadata | None = None,
) -> str:
    """Save a session buffer as json (samples, peak, metadata) and csv.

    Returns
    -------
    str
        Path to the json file.
    """
    dr = _get_dir(save_dir, project_name)
    os.makedirs(dr, exist_ok=True)
    base_path = _get_path(dr, SAVE_TYPE)
    json_path = _save_json(samples, peak, metadata, base_path)
    csv_path = _save_csv(samples, base_path)
    logger.info("Saved {} samples to {} and {}", len(samples), json_path, csv_path)
    return json_path
