from datetime import date
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import select, func
from academy.core.database import Store
from academy.main import create_app
from academy.services import records


@pytest.fixture
async def store(tmp_path):
    store = Store(f"sqlite+aiosqlite:///{tmp_path / 'academy.db'}")
    await store.init()
    yield store
    await store.close()


@pytest.fixture
async def db(store):
    async with store.session() as session:
        yield session


@pytest.fixture
async def seeded(store):
    """A batch with three students, a course, an instructor and exam 9"""
    async with store.session() as session:
        batch = await records.create_batch(session, "Batch A", date(2024, 6, 1))
        await records.create_course(session, "PPL", "Private Pilot Licence")
        instructor = await records.create_instructor(session, "Meera Nair", "meera@aerowis.in", "9000000001")

        for reg_no, name, gender in [(101, "Arjun", "Male"), (102, "Bhavna", "Female"), (103, "Chetan", "Male")]:
            await records.create_student(session, {
                "reg_no": reg_no,
                "name": name,
                "batch_id": batch.batch_id,
                "gender": gender
            })

        exam = await records.create_exam(session, {
            "exam_id": 9,
            "exam_name": "Air Regulations",
            "course_id": "PPL",
            "batch_id": batch.batch_id,
            "instructor_id": instructor.instructor_id,
            "max_score": 100,
            "cutoff_score": 40,
            "exam_date": date(2024, 8, 14)
        })

        return {
            "batch_id": batch.batch_id,
            "course_id": "PPL",
            "instructor_id": instructor.instructor_id,
            "exam_id": exam.exam_id,
            "students": [101, 102, 103]
        }


@pytest.fixture
async def client(store):
    app = create_app(store)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
async def auth_headers(client):
    response = await client.post("/auth/register-operator", json={
        "name": "Front Office",
        "email": "office@aerowis.in",
        "password": "s3cret-pass"
    })
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


async def count_rows(session, model, *criteria):
    result = await session.execute(select(func.count()).select_from(model).filter(*criteria))
    return result.scalar()
