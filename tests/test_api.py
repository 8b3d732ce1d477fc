"""API tests through the ASGI app."""

import pytest

API = "/api/v1"


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Request-ID" in response.headers


class TestAuth:
    @pytest.mark.asyncio
    async def test_register_login_and_me(self, client):
        response = await client.post(
            f"{API}/auth/register",
            json={"name": "Prof. Rui Alves", "email": "Rui@Example.edu", "password": "s3cret-pass"},
        )
        assert response.status_code == 201
        assert response.json()["email"] == "rui@example.edu"

        response = await client.post(
            f"{API}/auth/login",
            json={"email": "rui@example.edu", "password": "s3cret-pass"},
        )
        assert response.status_code == 200
        tokens = response.json()

        response = await client.get(
            f"{API}/auth/me", headers={"Authorization": f"Bearer {tokens['access_token']}"}
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Prof. Rui Alves"

        response = await client.post(
            f"{API}/auth/refresh", json={"refresh_token": tokens["refresh_token"]}
        )
        assert response.status_code == 200

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "password,broken_rules",
        [
            ("abc", ["at least 8 characters", "at least 1 number", "at least 1 special symbol"]),
            ("longpassword1", ["at least 1 special symbol"]),
            ("12345678!", ["at least 1 letter"]),
            ("!!!!!!!!!!", ["at least 1 number", "at least 1 letter"]),
        ],
    )
    async def test_weak_password_lists_every_broken_rule(self, client, password, broken_rules):
        response = await client.post(
            f"{API}/auth/register",
            json={"name": "Prof. Rui Alves", "email": "rui@example.edu", "password": password},
        )

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        message = error["details"]["errors"][0]["msg"]
        for rule in broken_rules:
            assert rule in message
        assert message.count("Password must") == len(broken_rules)

    @pytest.mark.asyncio
    async def test_wrong_password(self, client, owner):
        response = await client.post(
            f"{API}/auth/login",
            json={"email": owner.email, "password": "wrong-password"},
        )

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_FAILED"

    @pytest.mark.asyncio
    async def test_invalid_token(self, client):
        response = await client.get(f"{API}/courses", headers={"Authorization": "Bearer nope"})

        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "error": {"code": "AUTH_FAILED", "message": "Invalid or expired token", "details": {}},
        }


class TestImports:
    @pytest.mark.asyncio
    async def test_import_then_list_courses(self, client, auth_headers):
        response = await client.post(
            f"{API}/imports",
            headers=auth_headers,
            files={"file": ("cursos.csv", b"codigo,nome\nCC,Computacao\nENG,Engenharia\n", "text/csv")},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        assert body["record_kind"] == "courses"
        assert body["inserted_rows"] == 2

        response = await client.get(f"{API}/courses", headers=auth_headers)
        assert sorted(c["code"] for c in response.json()) == ["CC", "ENG"]

        response = await client.get(f"{API}/imports", headers=auth_headers)
        assert response.json()["total"] == 1

    @pytest.mark.asyncio
    async def test_preview(self, client, auth_headers):
        response = await client.post(
            f"{API}/imports/preview",
            headers=auth_headers,
            files={"file": ("notas.csv", b"matricula;disciplina;nota\nS1;MAT01;7,5\n", "text/csv")},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["record_kind"] == "grades"
        assert body["columns"] == ["matricula", "disciplina", "nota"]

    @pytest.mark.asyncio
    async def test_ambiguous_file_and_forced_kind(self, client, auth_headers, course):
        content = b"nome,matricula,curso,total_semestres\nCarla,S10,CC,8\n"

        response = await client.post(
            f"{API}/imports",
            headers=auth_headers,
            files={"file": ("alunos.csv", content, "text/csv")},
        )
        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "CLASSIFICATION_AMBIGUOUS"
        assert "rationale" in error["details"]

        response = await client.post(
            f"{API}/imports",
            headers=auth_headers,
            data={"kind": "students"},
            files={"file": ("alunos.csv", content, "text/csv")},
        )
        assert response.status_code == 200
        assert response.json()["inserted_rows"] == 1

    @pytest.mark.asyncio
    async def test_wrong_extension(self, client, auth_headers):
        response = await client.post(
            f"{API}/imports",
            headers=auth_headers,
            files={"file": ("notas.pdf", b"%PDF-1.4", "application/pdf")},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "UPLOAD_FAILED"

    @pytest.mark.asyncio
    async def test_precondition_failure_is_kept_in_history(self, client, auth_headers):
        response = await client.post(
            f"{API}/imports",
            headers=auth_headers,
            files={"file": ("notas.csv", b"matricula,disciplina,nota\nS1,MAT01,5\n", "text/csv")},
        )
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "PRECONDITION_FAILED"

        response = await client.get(f"{API}/imports", headers=auth_headers)
        items = response.json()["items"]
        assert len(items) == 1
        assert items[0]["status"] == "failed"

    @pytest.mark.asyncio
    async def test_error_report_download(self, client, auth_headers, subject, students):
        response = await client.post(
            f"{API}/imports",
            headers=auth_headers,
            files={"file": ("notas.csv", b"matricula,disciplina,nota\nS1,MAT01,5\nX9,MAT01,6\n", "text/csv")},
        )
        upload_id = response.json()["upload_id"]
        assert response.json()["status"] == "partial"

        response = await client.get(f"{API}/imports/{upload_id}", headers=auth_headers)
        assert response.json()["errors"][0]["identity"] == "X9 | MAT01 | Assessment"

        response = await client.get(f"{API}/imports/{upload_id}/errors.txt", headers=auth_headers)
        assert response.status_code == 200
        assert response.text == "Row 3: X9 | MAT01 | Assessment - Student not found (identifier: X9)"


class TestCatalog:
    @pytest.mark.asyncio
    async def test_duplicate_course_code(self, client, auth_headers, course):
        response = await client.post(
            f"{API}/courses",
            headers=auth_headers,
            json={"name": "Outro", "code": "cc", "start_date": "2024-02-01"},
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_grade_crud(self, client, auth_headers, subject, students):
        payload = {
            "student_id": students[0].id,
            "subject_id": subject.id,
            "grade": "8.5",
            "max_grade": "10",
            "assessment_type": "Prova",
            "assessment_name": "Prova 1",
            "date_assigned": "2024-04-10",
        }
        response = await client.post(f"{API}/grades", headers=auth_headers, json=payload)
        assert response.status_code == 201
        created = response.json()
        assert created["student_name"] == "Ana Lima"
        assert created["subject_name"] == "Cálculo I"

        response = await client.post(f"{API}/grades", headers=auth_headers, json=payload)
        assert response.status_code == 422

        response = await client.patch(
            f"{API}/grades/{created['id']}", headers=auth_headers, json={"grade": "12"}
        )
        assert response.status_code == 422

        response = await client.delete(f"{API}/grades/{created['id']}", headers=auth_headers)
        assert response.status_code == 200

        response = await client.get(f"{API}/grades", headers=auth_headers)
        assert response.json()["total"] == 0

    @pytest.mark.asyncio
    async def test_missing_student_is_404(self, client, auth_headers):
        response = await client.get(f"{API}/students/999", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_openapi_documents_import_errors(client):
    response = await client.get(f"{API}/openapi.json")

    responses = response.json()["paths"][f"{API}/imports"]["post"]["responses"]
    assert {"200", "400", "422"} <= set(responses)
