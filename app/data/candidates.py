"""Built-in candidate catalogue served by the simulated import source.

Candidates deliberately keep the loose shape an external API would return:
they carry their own ids (discarded on import) and may name categories the
tracker does not know about.
"""

BUILTIN_CANDIDATES: list[dict] = [
    {
        "id": 100,
        "title": "React",
        "description": "A library for building user interfaces",
        "category": "frontend",
        "difficulty": "beginner",
        "resources": ["https://react.dev", "https://legacy.reactjs.org"],
    },
    {
        "id": 101,
        "title": "Node.js",
        "description": "A JavaScript runtime for the server",
        "category": "backend",
        "difficulty": "intermediate",
        "resources": ["https://nodejs.org", "https://nodejs.org/en/docs/"],
    },
    {
        "id": 102,
        "title": "TypeScript",
        "description": "A typed superset of JavaScript",
        "category": "language",
        "difficulty": "intermediate",
        "resources": ["https://www.typescriptlang.org"],
    },
]
