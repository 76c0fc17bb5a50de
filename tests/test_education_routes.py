from unittest.mock import patch


def test_percentage_route(client):
    resp = client.post("/tools/education/percentage", json={"obtained": 85, "total": 100})
    assert resp.status_code == 200
    assert resp.get_json() == {"percentage": "85.00"}


def test_percentage_route_zero_total(client):
    resp = client.post("/tools/education/percentage", json={"obtained": 1, "total": 0})
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "Total cannot be zero"}


def test_cgpa_route_needs_list(client):
    resp = client.post("/tools/education/cgpa", json={"grades": "3.5"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Grades must be a list"


def test_gpa_route_bulk(client):
    body = client.post("/tools/education/gpa", json={"bulk": "Math,A,3\nArt,C,3"}).get_json()
    assert body["gpa"] == 3.0
    assert body["total_credits"] == 6


def test_average_route_accepts_list(client):
    body = client.post("/tools/education/average", json={"numbers": [2, 4, 9]}).get_json()
    assert body["mean"] == 5
    assert body["median"] == 4


def test_fraction_route(client):
    body = client.post("/tools/education/fraction", json={
        "a": {"numerator": 3, "denominator": 4},
        "b": {"numerator": 1, "denominator": 4},
        "operation": "-",
    }).get_json()
    assert body["formatted"] == "1/2"


def test_interest_route_compound(client):
    body = client.post("/tools/education/interest", json={
        "principal": 1000, "rate": 12, "time": 1, "type": "compound", "frequency": 12,
    }).get_json()
    assert body["total_amount"] == 1126.83


def test_rank_route(client):
    body = client.post("/tools/education/rank", json={"students": [
        {"name": "A", "score": 50}, {"name": "B", "score": 75},
    ]}).get_json()
    assert [r["name"] for r in body["rankings"]] == ["B", "A"]


def test_unit_converter_route(client):
    body = client.post("/tools/education/unit-converter",
                       json={"category": "weight", "from": "kg", "to": "g", "value": "2"}).get_json()
    assert body == {"result": "2000"}


def test_speed_distance_time_route(client):
    body = client.post("/tools/education/speed-distance-time",
                       json={"speed": 10, "distance": 100, "speed_unit": "m/s", "distance_unit": "m",
                             "time_unit": "seconds"}).get_json()
    assert body == {"field": "time", "result": "10.00 seconds"}


def test_attendance_route(client):
    body = client.post("/tools/education/attendance", json={
        "class_name": "Math 101",
        "dates": ["d1"],
        "students": [{"name": "Ann", "attendance": ["excused"]}],
    }).get_json()
    assert body["students"][0]["percentage"] == "100.0"


def test_attendance_report_download(client):
    with patch("koovlo.tools.education.routes.date") as fake_date:
        fake_date.today.return_value.isoformat.return_value = "2024-05-01"
        resp = client.post("/tools/education/attendance/report", json={
            "class_name": "Math 101",
            "dates": ["d1"],
            "students": [{"name": "Ann", "attendance": ["present"]}],
        })
    assert resp.status_code == 200
    assert resp.mimetype == "text/plain"
    assert "Math_101_attendance_report.txt" in resp.headers["Content-Disposition"]
    assert "Generated on: 2024-05-01" in resp.data.decode()


def test_scientific_route(client):
    assert client.post("/tools/education/scientific", json={"expression": "cos(60)*4"}).get_json()["result"] == 2
    resp = client.post("/tools/education/scientific", json={"expression": "import os"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Invalid expression"


def test_reading_time_route(client):
    body = client.post("/tools/education/reading-time", json={"text": "word " * 300, "wpm": 300}).get_json()
    assert body["reading_time"] == 1
    assert body["reading_level"] == "Very Fast (Speed Reader)"


def test_summarize_route_empty(client):
    resp = client.post("/tools/education/summarize", json={"text": ""})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Please enter some text to summarize"


def test_word_counter_route(client):
    body = client.post("/tools/education/word-counter", json={"text": "a b c"}).get_json()
    assert body["words"] == 3
    assert body["reading_time"] == 0.1


def test_scientific_route_nested_powers(client):
    resp = client.post("/tools/education/scientific", json={"expression": "((9^999)^999)^999"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Math error"


def test_attendance_route_numeric_mark(client):
    resp = client.post("/tools/education/attendance", json={
        "class_name": "Math 101",
        "dates": ["d1"],
        "students": [{"name": "Ann", "attendance": [1]}],
    })
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Unknown attendance status: 1"
