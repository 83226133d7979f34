from focus_arena.services import get_scoring_service
from focus_arena.utils.task_rules import TaskTemplate


def seed_today_tasks(flask_app, *templates):
    with flask_app.app_context():
        service = get_scoring_service()
        tasks, _ = service.store.insert_tasks_if_absent(service.today(), list(templates))
        return [task.id for task in tasks]


def submit(client, game_id, score):
    return client.post("/api/games/score", json={"game_id": game_id, "score": score})


def test_games_catalog(client):
    res = client.get("/api/games")
    assert res.status_code == 200
    games = {g["id"]: g for g in res.get_json()["games"]}
    assert set(games) == {
        "f1_reaction",
        "schulte_grid",
        "schulte_grid_3",
        "schulte_grid_4",
        "schulte_grid_5",
        "snake",
        "breakout",
    }
    assert games["snake"]["direction"] == "higher_better"


def test_submit_requires_login(client):
    res = submit(client, "snake", 100)
    assert res.status_code == 401
    assert res.get_json()["error"] == "Authentication required"


def test_submit_score(client, users, login):
    login(users["alice"])
    res = submit(client, "f1_reaction", 0.195)
    assert res.status_code == 201
    data = res.get_json()
    assert data["points_earned"] == 100
    assert data["score"]["game_id"] == "f1_reaction"
    assert data["message"] == "Score saved"

    me = client.get("/api/me").get_json()["user"]
    assert me["username"] == "alice"
    assert me["points"] == 100


def test_submit_accepts_game_type_alias(client, users, login):
    login(users["alice"])
    res = client.post("/api/games/score", json={"gameType": "schulte_grid_4", "score": 25})
    assert res.status_code == 201
    assert res.get_json()["points_earned"] == 60


def test_submit_validation_errors(client, users, login):
    login(users["alice"])

    res = client.post("/api/games/score", json={"score": 10})
    assert res.status_code == 400
    assert res.get_json()["missing"] == ["game_id"]

    res = submit(client, "tetris", 10)
    assert res.status_code == 400
    assert "tetris" in res.get_json()["error"]

    res = submit(client, "snake", -3)
    assert res.status_code == 400

    res = submit(client, "snake", "lots")
    assert res.status_code == 400

    assert client.get("/api/me").get_json()["user"]["points"] == 0


def test_game_leaderboard(client, users, login):
    login(users["alice"])
    submit(client, "snake", 150)
    login(users["bob"])
    submit(client, "snake", 400)
    submit(client, "snake", 120)

    res = client.get("/api/leaderboard/snake")
    assert res.status_code == 200
    board = res.get_json()["leaderboard"]
    assert [(row["username"], row["score"]) for row in board] == [("bob", 400), ("alice", 150)]
    assert [row["rank"] for row in board] == [1, 2]

    legacy = client.get("/api/games/leaderboard/snake").get_json()["leaderboard"]
    assert legacy == board

    assert client.get("/api/leaderboard/pong").status_code == 400


def test_total_and_today_leaderboards(client, users, login):
    login(users["alice"])
    submit(client, "snake", 500)
    login(users["bob"])
    submit(client, "breakout", 1500)
    submit(client, "breakout", 1000)

    total = client.get("/api/leaderboard/total").get_json()["leaderboard"]
    assert [(row["username"], row["total_points"]) for row in total] == [("bob", 140), ("alice", 100)]

    today = client.get("/api/leaderboard/today?limit=1").get_json()["leaderboard"]
    assert [row["username"] for row in today] == ["bob"]


def test_score_history_and_stats(client, users, login):
    login(users["alice"])
    submit(client, "snake", 90)
    submit(client, "snake", 210)

    history = client.get("/api/games/scores/snake").get_json()["history"]
    assert [row["score"] for row in history] == [210, 90]

    stats = client.get("/api/stats/user").get_json()["stats"]
    assert stats["total_games"] == 2
    assert stats["best_scores"] == {"snake": 210}


def test_today_tasks_are_generated_once(client, users, login):
    login(users["alice"])
    first = client.get("/api/tasks/today").get_json()["tasks"]
    second = client.get("/api/tasks/today").get_json()["tasks"]
    assert len(first) == 3
    assert [t["id"] for t in first] == [t["id"] for t in second]
    assert not any(t["completed"] for t in first)


def test_submission_completes_task(client, flask_app, users, login):
    (task_id,) = seed_today_tasks(flask_app, TaskTemplate("breakout", 1000, 100, "Breakout regular"))
    login(users["alice"])

    data = submit(client, "breakout", 1200).get_json()
    assert [t["id"] for t in data["completed_tasks"]] == [task_id]
    assert data["task_reward"] == 100
    assert data["total_points"] == 160

    again = submit(client, "breakout", 1200).get_json()
    assert again["completed_tasks"] == []

    tasks = client.get("/api/tasks/today").get_json()["tasks"]
    assert tasks[0]["completed"] is True

    history = client.get("/api/tasks/history").get_json()["history"]
    assert history[0]["id"] == task_id
    assert history[0]["completed_at"]


def test_manual_completion(client, flask_app, users, login):
    (task_id,) = seed_today_tasks(flask_app, TaskTemplate("snake", 300, 120, "Snake master"))
    login(users["bob"])

    res = client.post(f"/api/tasks/{task_id}/complete")
    assert res.status_code == 200
    assert res.get_json()["points_reward"] == 120

    res = client.post(f"/api/tasks/{task_id}/complete")
    assert res.status_code == 409
    assert res.get_json()["already_completed"] is True

    assert client.post("/api/tasks/9999/complete").status_code == 404
    assert client.get("/api/me").get_json()["user"]["points"] == 120


def test_admin_endpoints_require_admin(client, users, login):
    payload = {"name": "Spring", "start_date": "2026-03-01", "end_date": "2026-05-31"}
    assert client.post("/api/admin/seasons", json=payload).status_code == 401

    login(users["alice"])
    res = client.post("/api/admin/seasons", json=payload)
    assert res.status_code == 403
    assert res.get_json()["error"] == "Access forbidden"
    assert client.get("/api/admin/stats").status_code == 403
    assert client.delete(f"/api/admin/users/{users['bob']}").status_code == 403


def test_season_lifecycle(client, users, login):
    login(users["admin"])
    res = client.post("/api/admin/seasons", json={"name": "Forever"})
    assert res.status_code == 400
    assert res.get_json()["missing"] == ["start_date", "end_date"]

    res = client.post(
        "/api/admin/seasons",
        json={"name": "Backwards", "start_date": "2026-05-01", "end_date": "2026-04-01"},
    )
    assert res.status_code == 400

    res = client.post(
        "/api/admin/seasons",
        json={"name": "Forever", "start_date": "2000-01-01", "end_date": "2999-12-31"},
    )
    assert res.status_code == 201
    season = res.get_json()["season"]
    season_id = season["id"]
    assert season["end_date"].startswith("2999-12-31T23:59:59")

    login(users["alice"])
    data = submit(client, "snake", 350).get_json()
    assert data["season_id"] == season_id

    active = client.get("/api/seasons/active").get_json()["season"]
    assert active["id"] == season_id
    assert [s["id"] for s in client.get("/api/seasons").get_json()["seasons"]] == [season_id]

    board = client.get(f"/api/seasons/{season_id}/leaderboard/snake").get_json()["leaderboard"]
    assert [row["username"] for row in board] == ["alice"]
    totals = client.get(f"/api/seasons/{season_id}/leaderboard/total").get_json()["leaderboard"]
    assert totals[0]["total_points"] == 80
    stats = client.get(f"/api/seasons/{season_id}/stats").get_json()["stats"]
    assert stats == {"total_scores": 1, "total_points_awarded": 80, "active_users": 1}

    login(users["admin"])
    assert client.patch(f"/api/admin/seasons/{season_id}", json={}).status_code == 400
    assert (
        client.patch(f"/api/admin/seasons/{season_id}", json={"is_active": "yes"}).status_code
        == 400
    )
    res = client.patch(f"/api/admin/seasons/{season_id}", json={"is_active": False})
    assert res.status_code == 200
    assert res.get_json()["season"]["is_active"] is False
    assert client.get("/api/seasons/active").get_json()["season"] is None

    assert client.delete(f"/api/admin/seasons/{season_id}").status_code == 200
    assert client.get(f"/api/seasons/{season_id}").status_code == 404
    assert client.delete(f"/api/admin/seasons/{season_id}").status_code == 404
    assert client.patch("/api/admin/seasons/999", json={"name": "x"}).status_code == 404

    login(users["alice"])
    history = client.get("/api/games/scores/snake").get_json()["history"]
    assert history[0]["season_id"] is None


def test_admin_task_management(client, users, login):
    login(users["admin"])
    res = client.post("/api/admin/tasks/generate")
    assert res.status_code == 201
    tasks = res.get_json()["tasks"]
    assert len(tasks) == 3

    res = client.post("/api/admin/tasks/generate")
    assert res.status_code == 200
    assert res.get_json()["created"] is False

    listed = client.get("/api/admin/tasks").get_json()["tasks"]
    assert [t["id"] for t in listed] == [t["id"] for t in tasks]
    assert client.get("/api/admin/tasks?date=not-a-date").status_code == 400

    assert client.delete(f"/api/admin/tasks/{tasks[0]['id']}").status_code == 200
    assert client.delete(f"/api/admin/tasks/{tasks[0]['id']}").status_code == 404


def test_admin_score_moderation(client, users, login):
    login(users["alice"])
    submit(client, "snake", 320)
    login(users["bob"])
    score_id = submit(client, "f1_reaction", 0.195).get_json()["score"]["id"]

    login(users["admin"])
    scores = client.get("/api/admin/scores").get_json()["scores"]
    assert [(s["username"], s["game_id"]) for s in scores] == [
        ("bob", "f1_reaction"),
        ("alice", "snake"),
    ]
    snake_only = client.get("/api/admin/scores?game_id=snake").get_json()["scores"]
    assert [s["username"] for s in snake_only] == ["alice"]
    assert client.get("/api/admin/scores?game_id=tetris").status_code == 400

    assert client.delete(f"/api/admin/scores/{score_id}").status_code == 200
    assert client.delete(f"/api/admin/scores/{score_id}").status_code == 404
    assert client.get("/api/leaderboard/f1_reaction").get_json()["leaderboard"] == []


def test_admin_user_management(client, users, login):
    login(users["alice"])
    submit(client, "snake", 320)

    login(users["admin"])
    listed = client.get("/api/admin/users").get_json()["users"]
    assert len(listed) == 3
    assert (listed[0]["username"], listed[0]["points"]) == ("alice", 80)

    detail = client.get(f"/api/admin/users/{users['alice']}").get_json()
    assert detail["stats"]["total_games"] == 1
    assert [row["game_id"] for row in detail["history"]] == ["snake"]
    assert client.get("/api/admin/users/9999").status_code == 404

    res = client.put(f"/api/admin/users/{users['bob']}", json={"points": 500, "is_admin": True})
    assert res.status_code == 200
    updated = res.get_json()["user"]
    assert updated["points"] == 500
    assert updated["is_admin"] is True

    bob_url = f"/api/admin/users/{users['bob']}"
    assert client.put(bob_url, json={"username": "alice"}).status_code == 409
    assert client.put(bob_url, json={"points": -1}).status_code == 400
    assert client.put(bob_url, json={}).status_code == 400

    assert client.delete(f"/api/admin/users/{users['admin']}").status_code == 400
    assert client.delete(f"/api/admin/users/{users['alice']}").status_code == 200
    assert client.get(f"/api/admin/users/{users['alice']}").status_code == 404
    assert client.get("/api/admin/scores").get_json()["scores"] == []


def test_admin_platform_stats(client, users, login):
    login(users["alice"])
    submit(client, "snake", 320)
    submit(client, "f1_reaction", 0.195)
    login(users["bob"])
    submit(client, "snake", 320)

    login(users["admin"])
    stats = client.get("/api/admin/stats").get_json()["stats"]
    assert stats == {
        "total_users": 3,
        "total_scores": 3,
        "total_points_awarded": 80 + 100 + 80,
        "active_users_today": 2,
    }


def test_security_headers(client):
    res = client.get("/api/games")
    assert res.headers["X-Content-Type-Options"] == "nosniff"
    assert res.headers["X-Frame-Options"] == "DENY"


def test_admin_status(client, users, login):
    login(users["admin"])
    data = client.get("/api/admin/status").get_json()
    assert data["storage_backend"] == "sql"
    assert data["cache"]["type"] == "NullCache"
    assert data["scheduler"]["is_running"] is False
