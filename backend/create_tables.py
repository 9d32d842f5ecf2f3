# create_tables.py
from app.database import Base, engine
import app.models  # noqa: F401  registers the bike dealer tables on Base


def main():
    print("Using DB URL:", engine.url.render_as_string(hide_password=True))
    Base.metadata.create_all(bind=engine)
    print("Tables created (or already existed):", ", ".join(sorted(Base.metadata.tables)))


if __name__ == "__main__":
    main()
