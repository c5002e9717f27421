# app/utils/avatar.py
from urllib.parse import quote


def generate_default_avatar_url(name: str) -> str:
    return f"https://ui-avatars.com/api/?name={quote(name or 'User')}&background=0D8ABC&color=fff&size=128"
