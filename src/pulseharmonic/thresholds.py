"""Plausible heart-rate range lookup from a demographic percentile table.

The table is an XML document. Records are selected by ``type`` (``male`` /
``female``) and an inclusive ``agefrom``/``ageto`` range, given on the record
element or one of its ancestors. Percentile values are child elements such as
``<percentile2.5>55</percentile2.5>``. Only the first record matching both
sex and age is read; if it lacks either value of the pair the lookup fails.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from enum import Enum, IntEnum
from pathlib import Path
from typing import Optional, Tuple, Union

logger = logging.getLogger(__name__)


class ThresholdStatus(IntEnum):
    NO_ERROR = 0
    FILE_EXISTENCE_ERROR = 1
    FILE_OPEN_ERROR = 2
    PARSE_FAILURE = 3
    READ_ERROR = 4


class Sex(str, Enum):
    MALE = "male"
    FEMALE = "female"


class Alpha(str, Enum):
    """Two-sided confidence level of the plausible range."""

    TWO_PERCENTS = "two"
    FIVE_PERCENTS = "five"
    TEN_PERCENTS = "ten"
    TWENTY_PERCENTS = "twenty"
    FIFTY_PERCENTS = "fifty"


PERCENTILES = {
    Alpha.TWO_PERCENTS: ("percentile1.0", "percentile99.0"),
    Alpha.FIVE_PERCENTS: ("percentile2.5", "percentile97.5"),
    Alpha.TEN_PERCENTS: ("percentile5.0", "percentile95.0"),
    Alpha.TWENTY_PERCENTS: ("percentile10.0", "percentile90.0"),
    Alpha.FIFTY_PERCENTS: ("percentile25.0", "percentile75.0"),
}


def _age_matches(elem: ET.Element, age: int) -> Optional[bool]:
    if "agefrom" not in elem.attrib:
        return None
    try:
        return int(elem.attrib["agefrom"]) <= age <= int(elem.attrib.get("ageto", ""))
    except ValueError:
        return False


def load_thresholds(
    path: Union[str, Path],
    sex: Sex,
    age: int,
    alpha: Alpha,
) -> Tuple[ThresholdStatus, Optional[Tuple[float, float]]]:
    """Look up ``(low, high)`` bpm for a demographic bucket.

    Returns a status code and the bounds (None unless NO_ERROR). Never raises
    for file or document problems.
    """
    path = Path(path)
    if not path.exists():
        return ThresholdStatus.FILE_EXISTENCE_ERROR, None
    try:
        fh = path.open("rb")
    except OSError as exc:
        logger.warning("cannot open threshold file %s: %s", path, exc)
        return ThresholdStatus.FILE_OPEN_ERROR, None

    lower_tag, upper_tag = PERCENTILES[Alpha(alpha)]
    desired = Sex(sex).value
    low: Optional[float] = None
    high: Optional[float] = None
    # (sex matched, age matched) inherited down the element stack
    stack: list[Tuple[bool, bool]] = [(False, False)]
    # stack depth of the first matching record; both values must come from it
    record_depth = 0
    try:
        with fh:
            for event, elem in ET.iterparse(fh, events=("start", "end")):
                if event == "start":
                    sex_ok, age_ok = stack[-1]
                    parent_ok = sex_ok and age_ok
                    if "type" in elem.attrib:
                        sex_ok = elem.attrib["type"] == desired
                    m = _age_matches(elem, age)
                    if m is not None:
                        age_ok = m
                    stack.append((sex_ok, age_ok))
                    if sex_ok and age_ok and not parent_ok and not record_depth:
                        record_depth = len(stack)
                    continue
                depth = len(stack)
                sex_ok, age_ok = stack.pop()
                if record_depth and depth == record_depth:
                    break
                if not record_depth or not (sex_ok and age_ok):
                    continue
                if elem.tag not in (lower_tag, upper_tag):
                    continue
                try:
                    value = float((elem.text or "").strip())
                except ValueError:
                    continue
                if elem.tag == lower_tag and low is None:
                    low = value
                    logger.info("lower threshold: %f", value)
                elif elem.tag == upper_tag and high is None:
                    high = value
                    logger.info("upper threshold: %f", value)
                if low is not None and high is not None:
                    return ThresholdStatus.NO_ERROR, (low, high)
    except ET.ParseError as exc:
        logger.warning("malformed threshold file %s: %s", path, exc)
        return ThresholdStatus.PARSE_FAILURE, None
    except OSError as exc:
        logger.warning("cannot read threshold file %s: %s", path, exc)
        return ThresholdStatus.FILE_OPEN_ERROR, None

    logger.warning("no threshold record for %s, age %d, %s", desired, age, Alpha(alpha).name)
    return ThresholdStatus.READ_ERROR, None
