"""Domain layer (pure logic).

- Keep partitioning rules and score calculations here.
- Avoid I/O: no Redis, no FastAPI, no logging of session traffic.
- Randomness is passed in as an argument so results can be reproduced in tests.
"""
