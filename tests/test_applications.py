import os
from pathlib import Path

from backend.app.models import Application, Job


def _register(client, *, email: str, role: str, name: str = "Test User", password: str = "Testpass123!"):
    r = client.post("/auth/register", data={"email": email, "password": password, "role": role, "name": name})
    assert r.status_code == 201, r.text
    client.cookies.clear()
    return r.json()["token"]


def _auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def _create_job(client, token: str, **overrides) -> dict:
    body = {
        "title": "Backend Developer",
        "description": "Build and run APIs",
        "location": "Remote",
        "category": "Programming",
        "salary": 50000,
    }
    body.update(overrides)
    r = client.post("/jobs", headers=_auth_headers(token), json=body)
    assert r.status_code == 201, r.text
    return r.json()["job"]


def _apply(client, token: str, job_id: str, **form):
    data = {"jobId": job_id, "coverLetter": "I would love to join."}
    data.update(form)
    return client.post("/applications", headers=_auth_headers(token), data=data)


def _job_count(client, job_id: str) -> int:
    return client.get(f"/jobs/{job_id}").json()["job"]["applicationCount"]


def test_example_scenario(client):
    u1 = _register(client, email="u1@example.com", role="jobseeker", name="U1")
    r1 = _register(client, email="r1@example.com", role="recruiter", name="R1")
    j1 = _create_job(client, r1)
    assert j1["status"] == "active"

    r = _apply(client, u1, j1["id"])
    assert r.status_code == 201, r.text
    p1 = r.json()["application"]
    assert p1["status"] == "pending"
    assert _job_count(client, j1["id"]) == 1

    r = _apply(client, u1, j1["id"])
    assert r.status_code == 400, r.text
    assert r.json()["error"] == "You have already applied for this job"
    assert _job_count(client, j1["id"]) == 1

    r = client.patch(
        f"/applications/{p1['id']}/status",
        headers=_auth_headers(r1),
        json={"status": "shortlisted"},
    )
    assert r.status_code == 200, r.text
    assert r.json()["application"]["status"] == "shortlisted"

    r = client.delete(f"/applications/{p1['id']}", headers=_auth_headers(u1))
    assert r.status_code == 400, r.text
    assert r.json()["error"] == "You can only withdraw applications that are still pending"
    assert _job_count(client, j1["id"]) == 1


def test_uniqueness_creates_no_second_record(client, db_session):
    seeker = _register(client, email="s@example.com", role="jobseeker")
    rec = _register(client, email="r@example.com", role="recruiter")
    job = _create_job(client, rec)

    assert _apply(client, seeker, job["id"]).status_code == 201
    assert _apply(client, seeker, job["id"]).status_code == 400

    assert db_session.query(Application).filter(Application.job_id == job["id"]).count() == 1


def test_counter_consistency_over_submit_and_withdraw(client, db_session):
    rec = _register(client, email="r@example.com", role="recruiter")
    job = _create_job(client, rec)
    seekers = [_register(client, email=f"s{i}@example.com", role="jobseeker") for i in range(4)]

    app_ids = []
    for token in seekers:
        r = _apply(client, token, job["id"])
        assert r.status_code == 201, r.text
        app_ids.append(r.json()["application"]["id"])
    assert _job_count(client, job["id"]) == 4

    for token, app_id in zip(seekers[:2], app_ids[:2]):
        r = client.delete(f"/applications/{app_id}", headers=_auth_headers(token))
        assert r.status_code == 200, r.text

    actual = db_session.query(Application).filter(Application.job_id == job["id"]).count()
    assert actual == 2
    assert _job_count(client, job["id"]) == actual


def test_withdraw_pending_application(client):
    seeker = _register(client, email="s@example.com", role="jobseeker")
    rec = _register(client, email="r@example.com", role="recruiter")
    job = _create_job(client, rec)
    app_id = _apply(client, seeker, job["id"]).json()["application"]["id"]

    r = client.delete(f"/applications/{app_id}", headers=_auth_headers(seeker))
    assert r.status_code == 200, r.text
    assert _job_count(client, job["id"]) == 0
    assert client.get(f"/applications/{app_id}", headers=_auth_headers(seeker)).status_code == 404

    # Withdrawn applicants may apply again.
    assert _apply(client, seeker, job["id"]).status_code == 201


def test_only_applicant_can_withdraw(client):
    seeker = _register(client, email="s@example.com", role="jobseeker")
    other = _register(client, email="o@example.com", role="jobseeker")
    rec = _register(client, email="r@example.com", role="recruiter")
    job = _create_job(client, rec)
    app_id = _apply(client, seeker, job["id"]).json()["application"]["id"]

    assert client.delete(f"/applications/{app_id}", headers=_auth_headers(other)).status_code == 403
    assert client.delete(f"/applications/{app_id}", headers=_auth_headers(rec)).status_code == 403
    assert _job_count(client, job["id"]) == 1


def test_cannot_apply_to_inactive_or_missing_job(client):
    seeker = _register(client, email="s@example.com", role="jobseeker")
    rec = _register(client, email="r@example.com", role="recruiter")
    draft = _create_job(client, rec, status="draft")

    r = _apply(client, seeker, draft["id"])
    assert r.status_code == 404, r.text
    assert r.json()["error"] == "Job not found or not accepting applications"

    assert _apply(client, seeker, "a" * 24).status_code == 404
    assert _apply(client, seeker, "not-an-id").status_code == 400


def test_recruiter_cannot_apply(client):
    rec = _register(client, email="r@example.com", role="recruiter")
    job = _create_job(client, rec)
    assert _apply(client, rec, job["id"]).status_code == 403


def test_resume_defaults_to_profile_resume(client):
    seeker = client.post(
        "/auth/register",
        data={"email": "s@example.com", "password": "Testpass123!", "role": "jobseeker", "name": "S"},
        files={"resume": ("cv.pdf", b"%PDF-1.4 profile resume", "application/pdf")},
    )
    assert seeker.status_code == 201, seeker.text
    client.cookies.clear()
    profile_resume = seeker.json()["user"]["resumeUrl"]
    token = seeker.json()["token"]

    rec = _register(client, email="r@example.com", role="recruiter")
    job = _create_job(client, rec)

    r = _apply(client, token, job["id"])
    assert r.status_code == 201, r.text
    assert r.json()["application"]["resume"] == profile_resume


def test_submit_with_resume_upload_and_url(client):
    seeker = _register(client, email="s@example.com", role="jobseeker")
    other = _register(client, email="o@example.com", role="jobseeker")
    rec = _register(client, email="r@example.com", role="recruiter")
    job = _create_job(client, rec)

    r = client.post(
        "/applications",
        headers=_auth_headers(seeker),
        data={"jobId": job["id"]},
        files={"resume": ("cv.docx", b"fake docx bytes", "application/octet-stream")},
    )
    assert r.status_code == 201, r.text
    url = r.json()["application"]["resume"]
    assert url.startswith("http://testserver/uploads/resumes/") and url.endswith(".docx")

    r = _apply(client, other, job["id"], resumeUrl="https://files.example.com/cv.pdf")
    assert r.status_code == 201, r.text
    assert r.json()["application"]["resume"] == "https://files.example.com/cv.pdf"


def test_oversized_cover_letter_is_rejected_before_resume_is_stored(client):
    seeker = _register(client, email="s@example.com", role="jobseeker")
    rec = _register(client, email="r@example.com", role="recruiter")
    job = _create_job(client, rec)
    seeker_id = client.get("/auth/profile", headers=_auth_headers(seeker)).json()["user"]["id"]

    r = client.post(
        "/applications",
        headers=_auth_headers(seeker),
        data={"jobId": job["id"], "coverLetter": "x" * 10001},
        files={"resume": ("cv.pdf", b"%PDF-1.4", "application/pdf")},
    )
    assert r.status_code == 400, r.text
    assert "Cover letter" in r.json()["error"]

    assert not (Path(os.environ["UPLOAD_DIR"]) / "resumes" / seeker_id).exists()
    assert _job_count(client, job["id"]) == 0


def test_list_for_job_with_status_counts(client):
    rec = _register(client, email="r@example.com", role="recruiter")
    job = _create_job(client, rec)
    ids = []
    for i in range(3):
        token = _register(client, email=f"s{i}@example.com", role="jobseeker", name=f"Seeker {i}")
        ids.append(_apply(client, token, job["id"]).json()["application"]["id"])
    client.patch(f"/applications/{ids[0]}/status", headers=_auth_headers(rec), json={"status": "hired"})

    r = client.get(f"/applications/job/{job['id']}", headers=_auth_headers(rec))
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["totalApplications"] == 3
    assert data["statusCounts"] == {
        "total": 3,
        "pending": 2,
        "reviewed": 0,
        "shortlisted": 0,
        "rejected": 0,
        "hired": 1,
    }
    assert all(a["applicant"]["name"].startswith("Seeker") for a in data["applications"])

    r = client.get(f"/applications/job/{job['id']}", headers=_auth_headers(rec), params={"status": "hired"})
    data = r.json()
    assert [a["id"] for a in data["applications"]] == [ids[0]]
    # Buckets stay unfiltered.
    assert data["statusCounts"]["total"] == 3


def test_list_for_job_requires_ownership(client):
    rec = _register(client, email="r@example.com", role="recruiter")
    other = _register(client, email="o@example.com", role="recruiter")
    job = _create_job(client, rec)

    assert client.get(f"/applications/job/{job['id']}", headers=_auth_headers(other)).status_code == 403
    assert client.get("/applications/job/" + "b" * 24, headers=_auth_headers(rec)).status_code == 404


def test_list_for_applicant_embeds_job(client):
    seeker = _register(client, email="s@example.com", role="jobseeker")
    rec = _register(client, email="r@example.com", role="recruiter", name="Acme")
    j1 = _create_job(client, rec, title="First")
    j2 = _create_job(client, rec, title="Second")
    _apply(client, seeker, j1["id"])
    _apply(client, seeker, j2["id"])

    r = client.get("/applications/user", headers=_auth_headers(seeker))
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["totalApplications"] == 2
    assert [a["job"]["title"] for a in data["applications"]] == ["Second", "First"]
    assert data["applications"][0]["job"]["owner"]["name"] == "Acme"

    r = client.get("/applications/user", headers=_auth_headers(seeker), params={"sort": "oldest"})
    assert [a["job"]["title"] for a in r.json()["applications"]] == ["First", "Second"]


def test_list_for_recruiter_across_jobs(client):
    rec = _register(client, email="r@example.com", role="recruiter")
    other = _register(client, email="o@example.com", role="recruiter")
    j1 = _create_job(client, rec, title="One")
    j2 = _create_job(client, rec, title="Two")
    foreign = _create_job(client, other, title="Foreign")
    seeker = _register(client, email="s@example.com", role="jobseeker")
    for job in (j1, j2, foreign):
        assert _apply(client, seeker, job["id"]).status_code == 201

    r = client.get("/applications/recruiter", headers=_auth_headers(rec))
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["totalApplications"] == 2
    assert sorted(a["job"]["title"] for a in data["applications"]) == ["One", "Two"]
    assert data["statusCounts"]["total"] == 2
    assert data["statusCounts"]["pending"] == 2


def test_list_for_recruiter_without_jobs(client):
    rec = _register(client, email="r@example.com", role="recruiter")
    r = client.get("/applications/recruiter", headers=_auth_headers(rec))
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["applications"] == []
    assert data["statusCounts"]["total"] == 0


def test_get_by_id_visibility(client):
    seeker = _register(client, email="s@example.com", role="jobseeker")
    stranger = _register(client, email="x@example.com", role="jobseeker")
    rec = _register(client, email="r@example.com", role="recruiter")
    other_rec = _register(client, email="o@example.com", role="recruiter")
    job = _create_job(client, rec)
    app_id = _apply(client, seeker, job["id"]).json()["application"]["id"]

    r = client.get(f"/applications/{app_id}", headers=_auth_headers(seeker))
    assert r.status_code == 200, r.text
    assert r.json()["application"]["job"]["title"] == job["title"]
    assert client.get(f"/applications/{app_id}", headers=_auth_headers(rec)).status_code == 200
    assert client.get(f"/applications/{app_id}", headers=_auth_headers(stranger)).status_code == 403
    assert client.get(f"/applications/{app_id}", headers=_auth_headers(other_rec)).status_code == 403
    assert client.get("/applications/xyz", headers=_auth_headers(seeker)).status_code == 400


def test_update_status_rules(client):
    seeker = _register(client, email="s@example.com", role="jobseeker")
    rec = _register(client, email="r@example.com", role="recruiter")
    other_rec = _register(client, email="o@example.com", role="recruiter")
    job = _create_job(client, rec)
    app_id = _apply(client, seeker, job["id"]).json()["application"]["id"]

    r = client.patch(
        f"/applications/{app_id}/status",
        headers=_auth_headers(other_rec),
        json={"status": "rejected"},
    )
    assert r.status_code == 403, r.text

    r = client.patch(f"/applications/{app_id}/status", headers=_auth_headers(rec), json={"status": "maybe"})
    assert r.status_code == 400, r.text

    # Flat status set: any status can follow any other.
    for status in ("hired", "pending", "rejected", "reviewed"):
        r = client.patch(
            f"/applications/{app_id}/status",
            headers=_auth_headers(rec),
            json={"status": status, "notes": f"now {status}"},
        )
        assert r.status_code == 200, r.text
        assert r.json()["application"]["status"] == status
        assert r.json()["application"]["notes"] == f"now {status}"


def test_delete_job_cascades_to_applications(client, db_session):
    rec = _register(client, email="r@example.com", role="recruiter")
    job = _create_job(client, rec)
    for i in range(3):
        token = _register(client, email=f"s{i}@example.com", role="jobseeker")
        assert _apply(client, token, job["id"]).status_code == 201

    r = client.delete(f"/jobs/{job['id']}", headers=_auth_headers(rec))
    assert r.status_code == 200, r.text
    assert r.json()["deletedApplications"] == 3

    assert db_session.query(Application).filter(Application.job_id == job["id"]).count() == 0
    assert db_session.query(Job).filter(Job.id == job["id"]).count() == 0


def test_recruiter_jobs_and_stats_reflect_applications(client):
    rec = _register(client, email="r@example.com", role="recruiter")
    busy = _create_job(client, rec, title="Busy")
    _create_job(client, rec, title="Quiet")
    for i in range(2):
        token = _register(client, email=f"s{i}@example.com", role="jobseeker")
        app_id = _apply(client, token, busy["id"]).json()["application"]["id"]
    client.patch(f"/applications/{app_id}/status", headers=_auth_headers(rec), json={"status": "shortlisted"})

    r = client.get("/jobs/recruiter/jobs", headers=_auth_headers(rec), params={"sort": "applications-highest"})
    jobs = r.json()["jobs"]
    assert [(j["title"], j["applicationCount"]) for j in jobs] == [("Busy", 2), ("Quiet", 0)]

    stats = client.get("/jobs/recruiter/stats", headers=_auth_headers(rec)).json()
    assert stats["applicationStats"]["total"] == 2
    assert stats["applicationStats"]["pending"] == 1
    assert stats["applicationStats"]["shortlisted"] == 1
