from focus_arena import create_app, db
from focus_arena.models import DailyTask, GameScore, Season, User, UserTask

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "User": User,
        "GameScore": GameScore,
        "Season": Season,
        "DailyTask": DailyTask,
        "UserTask": UserTask,
    }


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True)
