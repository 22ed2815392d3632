import hashlib, json

def payload_hash(payload) -> str:
    if hasattr(payload, "model_dump"):
        payload = payload.model_dump(mode="json", exclude_unset=True)
    s = json.dumps(payload or {}, sort_keys=True, default=str)
    return hashlib.sha256(s.encode()).hexdigest()
