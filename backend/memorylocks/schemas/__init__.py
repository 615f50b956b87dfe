# Pydantic request bodies, partial-update payloads and response DTOs
