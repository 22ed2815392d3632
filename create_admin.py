import sys
from pathlib import Path
from portal.core.security import hash_password, verify_password


def admin_env_lines(username: str, password: str) -> list:
    hashed_password = hash_password(password)
    if not verify_password(password, hashed_password):
        raise RuntimeError("Generated hash does not verify")
    return [f"ADMIN_USERNAME={username}", f"ADMIN_PASSWORD_HASH='{hashed_password}'"]


def write_env(env_path: Path, lines: list) -> None:
    # Replace any previous admin entries, keep everything else.
    kept = []
    if env_path.exists():
        kept = [
            line for line in env_path.read_text().splitlines()
            if not line.startswith(("ADMIN_USERNAME=", "ADMIN_PASSWORD_HASH="))
        ]
    env_path.write_text("\n".join(kept + lines) + "\n")


def main():
    if len(sys.argv) < 3:
        print("Usage: python create_admin.py <username> <password> [--write-env PATH]")
        sys.exit(1)

    username = sys.argv[1]
    password = sys.argv[2]

    if not username or not password:
        print("Error: username and password cannot be empty")
        sys.exit(1)

    lines = admin_env_lines(username, password)

    if len(sys.argv) >= 5 and sys.argv[3] == "--write-env":
        env_path = Path(sys.argv[4])
        write_env(env_path, lines)
        print(f"Admin credentials for '{username}' written to {env_path}")
    else:
        print("Add these lines to your environment:")
        for line in lines:
            print(line)


if __name__ == "__main__":
    main()
