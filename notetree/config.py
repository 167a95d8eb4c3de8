from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Tree settings
    root_note_id: str = "root"
    max_ancestor_visits: int = 10_000  # bound on the cycle check traversal
    max_paths: int = 50  # paths enumerated per note

    # Backing store settings
    local_store_path: str = "data/notes.json"

    # Autocomplete settings
    autocomplete_limit: int = 20
    recent_notes_limit: int = 10
    mention_marker: str = "@"

    log_level: str = "INFO"  # Can be DEBUG, INFO, WARNING, ERROR, CRITICAL


settings = Settings()
