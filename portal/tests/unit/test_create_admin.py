from create_admin import admin_env_lines, write_env
from portal.core.security import verify_password


def test_env_lines_hold_verifiable_hash():
    username_line, hash_line = admin_env_lines("staff", "s3cret")

    assert username_line == "ADMIN_USERNAME=staff"
    hashed = hash_line.split("=", 1)[1].strip("'")
    assert verify_password("s3cret", hashed)


def test_write_env_replaces_previous_admin(tmp_path):
    env = tmp_path / ".env"
    env.write_text("NOTION_API_KEY=abc\nADMIN_USERNAME=old\nADMIN_PASSWORD_HASH='x'\n")

    write_env(env, ["ADMIN_USERNAME=staff", "ADMIN_PASSWORD_HASH='y'"])

    assert env.read_text().splitlines() == ["NOTION_API_KEY=abc", "ADMIN_USERNAME=staff", "ADMIN_PASSWORD_HASH='y'"]
