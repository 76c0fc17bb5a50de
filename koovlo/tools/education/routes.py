import logging
import re
from datetime import date

from flask import Blueprint, jsonify
from werkzeug.utils import secure_filename

from ...errors import tool_errors
from ...uploads import json_body, send_bytes
from ..text.ops import word_stats
from . import calculators as calc

logger = logging.getLogger(__name__)

bp = Blueprint("education", __name__, url_prefix="/tools/education")


def _list(data, key, label):
    value = data.get(key) or []
    if not isinstance(value, list):
        raise ValueError(f"{label} must be a list")
    return value


@bp.post("/percentage")
@tool_errors("An error occurred while calculating. Please try again.")
def percentage_post():
    data = json_body()
    return jsonify(calc.percentage(data.get("obtained"), data.get("total")))


@bp.post("/marks-percentage")
@tool_errors("An error occurred while calculating. Please try again.")
def marks_percentage_post():
    data = json_body()
    return jsonify(calc.marks_percentage(data.get("obtained"), data.get("total")))


@bp.post("/cgpa")
@tool_errors("An error occurred while calculating. Please try again.")
def cgpa_post():
    data = json_body()
    return jsonify(calc.cgpa(_list(data, "grades", "Grades")))


@bp.post("/gpa")
@tool_errors("An error occurred while calculating. Please try again.")
def gpa_post():
    data = json_body()
    result = calc.gpa(_list(data, "courses", "Courses"), data.get("target_gpa"), data.get("bulk") or "")
    return jsonify(result)


@bp.post("/grade")
@tool_errors("An error occurred while calculating. Please try again.")
def grade_post():
    data = json_body()
    return jsonify(calc.grade(_list(data, "subjects", "Subjects")))


@bp.post("/average")
@tool_errors("An error occurred while calculating. Please try again.")
def average_post():
    data = json_body()
    numbers = data.get("numbers")
    if isinstance(numbers, list):
        numbers = " ".join(str(n) for n in numbers)
    return jsonify(calc.average(numbers or ""))


@bp.post("/fraction")
@tool_errors("An error occurred while calculating. Please try again.")
def fraction_post():
    data = json_body()
    return jsonify(calc.fraction(data.get("a"), data.get("b"), data.get("operation") or "+"))


@bp.post("/interest")
@tool_errors("An error occurred while calculating. Please try again.")
def interest_post():
    data = json_body()
    result = calc.interest(
        data.get("principal"),
        data.get("rate"),
        data.get("time"),
        kind=data.get("type") or "simple",
        frequency=data.get("frequency", 12),
    )
    return jsonify(result)


@bp.post("/rank")
@tool_errors("An error occurred while ranking. Please try again.")
def rank_post():
    data = json_body()
    return jsonify(calc.rank(_list(data, "students", "Students")))


@bp.post("/reading-time")
@tool_errors("An error occurred while calculating. Please try again.")
def reading_time_post():
    data = json_body()
    return jsonify(calc.reading_time(data.get("text") or "", data.get("wpm", 200)))


@bp.post("/speed-distance-time")
@tool_errors("An error occurred while calculating. Please try again.")
def speed_distance_time_post():
    data = json_body()
    result = calc.speed_distance_time(
        speed=data.get("speed"),
        distance=data.get("distance"),
        time=data.get("time"),
        speed_unit=data.get("speed_unit") or "km/h",
        distance_unit=data.get("distance_unit") or "km",
        time_unit=data.get("time_unit") or "hours",
    )
    return jsonify(result)


@bp.post("/unit-converter")
@tool_errors("An error occurred while converting. Please try again.")
def unit_converter_post():
    data = json_body()
    result = calc.convert_unit(data.get("category") or "", data.get("from") or "", data.get("to") or "", data.get("value"))
    return jsonify(result)


@bp.post("/attendance")
@tool_errors("An error occurred while calculating attendance. Please try again.")
def attendance_post():
    data = json_body()
    result = calc.attendance(
        data.get("class_name") or "",
        _list(data, "dates", "Dates"),
        _list(data, "students", "Students"),
    )
    return jsonify(result)


@bp.post("/attendance/report")
@tool_errors("An error occurred while building the report. Please try again.")
def attendance_report_post():
    data = json_body()
    class_name = (data.get("class_name") or "").strip() or "Class"
    report = calc.attendance_report(
        class_name,
        _list(data, "dates", "Dates"),
        _list(data, "students", "Students"),
        generated_on=date.today().isoformat(),
    )
    filename = secure_filename(re.sub(r"\s+", "_", class_name) + "_attendance_report.txt")
    return send_bytes(report.encode("utf-8"), filename, "text/plain")


@bp.post("/scientific")
@tool_errors("An error occurred while calculating. Please try again.")
def scientific_post():
    data = json_body()
    return jsonify(calc.scientific(data.get("expression") or ""))


@bp.post("/summarize")
@tool_errors("An error occurred while summarizing. Please try again.")
def summarize_post():
    data = json_body()
    result = calc.summarize(data.get("text") or "", data.get("length", 30))
    logger.info("summarize %d -> %d words", result["original_words"], result["summary_words"])
    return jsonify(result)


@bp.post("/word-counter")
@tool_errors("An error occurred while counting. Please try again.")
def word_counter_post():
    data = json_body()
    return jsonify(word_stats(data.get("text") or ""))
