from academy.utils.receipts import ReceiptNumbering


async def create_roster(client, headers):
    batch = await client.post("/batches", json={"batch_name": "Batch A", "start_date": "2024-06-01"}, headers=headers)
    assert batch.status_code == 200
    batch_id = batch.json()["batch_id"]

    course = await client.post("/courses", json={"course_id": "PPL", "course_name": "Private Pilot Licence"},
                               headers=headers)
    assert course.status_code == 200

    instructor = await client.post("/instructors", json={"name": "Meera Nair", "email": "Meera@aerowis.in"},
                                   headers=headers)
    assert instructor.status_code == 200
    assert instructor.json()["email"] == "meera@aerowis.in"

    for reg_no, name in [(101, "Arjun"), (102, "Bhavna"), (103, "Chetan")]:
        student = await client.post("/students", json={"reg_no": reg_no, "name": name, "batch_id": batch_id},
                                    headers=headers)
        assert student.status_code == 200

    exam = await client.post("/exams", json={
        "exam_name": "Air Regulations",
        "course_id": "PPL",
        "batch_id": batch_id,
        "instructor_id": instructor.json()["instructor_id"],
        "max_score": 100,
        "cutoff_score": 40,
        "exam_date": "2024-08-14"
    }, headers=headers)
    assert exam.status_code == 200

    return {"batch_id": batch_id, "exam_id": exam.json()["exam_id"], "instructor_id": instructor.json()["instructor_id"]}


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_routes_require_operator_token(client):
    response = await client.get("/students")
    assert response.status_code in (401, 403)

    response = await client.get("/students", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


async def test_only_first_operator_can_register(client, auth_headers):
    response = await client.post("/auth/register-operator", json={
        "name": "Second",
        "email": "second@aerowis.in",
        "password": "another-pass"
    })
    assert response.status_code == 400

    exists = await client.get("/auth/check-operator-exists")
    assert exists.json() == {"operator_exists": True}


async def test_login(client, auth_headers):
    response = await client.post("/auth/login", json={"email": "office@aerowis.in", "password": "s3cret-pass"})
    assert response.status_code == 200
    token = response.json()["access_token"]

    me = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["email"] == "office@aerowis.in"

    wrong = await client.post("/auth/login", json={"email": "office@aerowis.in", "password": "nope"})
    assert wrong.status_code == 401


async def test_results_statistics_and_report(client, auth_headers):
    roster = await create_roster(client, auth_headers)
    exam_id = roster["exam_id"]

    for reg_no, mark in [(101, 80), (102, 30)]:
        response = await client.put(f"/exams/{exam_id}/results/{reg_no}", json={"obtained_mark": mark},
                                    headers=auth_headers)
        assert response.status_code == 200

    response = await client.put(f"/exams/{exam_id}/results/101", json={"obtained_mark": 85}, headers=auth_headers)
    assert response.json()["status"] == "Pass"
    assert response.json()["student_name"] == "Arjun"

    results = await client.get(f"/exams/{exam_id}/results", headers=auth_headers)
    assert [(r["student_id"], r["obtained_mark"], r["status"]) for r in results.json()] == [
        (101, 85, "Pass"),
        (102, 30, "Fail")
    ]

    stats = (await client.get(f"/exams/{exam_id}/statistics", headers=auth_headers)).json()
    assert stats["total_students"] == 3
    assert stats["absent"] == 1
    assert stats["pass_percent"] == 50.0
    assert stats["top_scorer"]["student_id"] == 101

    report = (await client.get(f"/exams/{exam_id}/report", headers=auth_headers)).json()
    assert report["exam"]["batch_name"] == "Batch A"
    assert report["results"][2] == {
        "student_id": 103,
        "student_name": "Chetan",
        "gender": None,
        "obtained_mark": None,
        "status": "Absent"
    }

    summary = await client.get("/students/101/academic-summary", params={"month": "2024-08"}, headers=auth_headers)
    assert summary.status_code == 200
    assert summary.json()["summary"]["average"] == 85.0


async def test_payment_receipts(client, auth_headers):
    await create_roster(client, auth_headers)
    prefix = ReceiptNumbering.financial_year()

    first = await client.post("/finance", json={
        "student_id": 101,
        "amount": 25000,
        "type": "Tuition",
        "payment_method": "Cash",
        "payment_date": "2024-07-01"
    }, headers=auth_headers)
    assert first.status_code == 200
    assert first.json()["receipt_id"] == f"{prefix}/001"

    second = await client.post("/finance", json={
        "student_id": 101,
        "amount": 1500,
        "type": "Exam Fee",
        "payment_method": "UPI",
        "payment_date": "2024-08-01"
    }, headers=auth_headers)
    assert second.json()["receipt_id"] == f"{prefix}/002"

    fetched = await client.get(f"/finance/{prefix}/002", headers=auth_headers)
    assert fetched.status_code == 200
    assert fetched.json()["student_name"] == "Arjun"

    summary = (await client.get("/students/101/financial-summary", headers=auth_headers)).json()
    assert summary["total_paid"] == 26500
    assert summary["by_method"] == {"Cash": 25000, "UPI": 1500}

    invalid = await client.post("/finance", json={
        "student_id": 101,
        "amount": 0,
        "type": "Tuition",
        "payment_method": "Cash",
        "payment_date": "2024-07-01"
    }, headers=auth_headers)
    assert invalid.status_code == 400


async def test_error_statuses(client, auth_headers):
    roster = await create_roster(client, auth_headers)

    response = await client.delete(f"/batches/{roster['batch_id']}", headers=auth_headers)
    assert response.status_code == 409

    response = await client.post("/exams", json={
        "exam_name": "Meteorology",
        "course_id": "PPL",
        "batch_id": roster["batch_id"],
        "instructor_id": roster["instructor_id"],
        "max_score": 50,
        "cutoff_score": 60,
        "exam_date": "2024-09-01"
    }, headers=auth_headers)
    assert response.status_code == 400
    assert "cutoff_score" in response.json()["detail"]

    response = await client.put("/exams/404/results/101", json={"obtained_mark": 50}, headers=auth_headers)
    assert response.status_code == 404

    response = await client.post("/batches", json={"batch_name": "Batch A"}, headers=auth_headers)
    assert response.status_code == 409

    response = await client.get("/students/999", headers=auth_headers)
    assert response.status_code == 404


async def test_deleting_student_removes_records(client, auth_headers):
    roster = await create_roster(client, auth_headers)
    await client.put(f"/exams/{roster['exam_id']}/results/102", json={"obtained_mark": 70}, headers=auth_headers)

    response = await client.delete("/students/102", headers=auth_headers)
    assert response.status_code == 200

    results = await client.get("/results", headers=auth_headers)
    assert results.json() == []


async def test_operator_can_add_operator(client, auth_headers):
    operator = {"name": "Accounts Desk", "email": "Accounts@aerowis.in", "password": "ledger-pass"}

    response = await client.post("/auth/operators", json=operator)
    assert response.status_code in (401, 403)

    response = await client.post("/auth/operators", json=operator, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["email"] == "accounts@aerowis.in"

    duplicate = await client.post("/auth/operators", json=operator, headers=auth_headers)
    assert duplicate.status_code == 400

    login = await client.post("/auth/login", json={"email": "accounts@aerowis.in", "password": "ledger-pass"})
    assert login.status_code == 200
    assert login.json()["user_name"] == "Accounts Desk"


async def test_student_search(client, auth_headers):
    await create_roster(client, auth_headers)

    response = await client.get("/students", params={"search": "chet"}, headers=auth_headers)
    assert [s["reg_no"] for s in response.json()] == [103]

    response = await client.get("/students", params={"search": "102"}, headers=auth_headers)
    assert [s["name"] for s in response.json()] == ["Bhavna"]
