"""Shared fixtures for code_token_index tests."""

from pathlib import Path

import numpy as np
import pytest


def write_tree(root: Path, files: dict) -> dict:
    """Create files under root from a {relative_path: content} mapping."""
    paths = {}
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        paths[rel] = path
    return paths


SERVER_TS = """import express from 'express';
import authRoutes from './routes/auth.route';

const app = express();

app.use(express.json());
app.use('/api/auth', authRoutes);

app.get('/', async (req, res) => {
  res.send('ok');
});

function add(a, b) {
  return a + b;
}

app.listen(3000);
"""

TYPES_TS = """export interface User {
  id: string;
  name: string;
}

export class UserStore {
  private users: User[] = [];
}
"""

BUTTON_TSX = """const Button = (props) => {
  return null;
};
"""


@pytest.fixture
def sample_project(tmp_path):
    """A small Express-style project with a dependency directory."""
    write_tree(tmp_path, {
        "src/server.ts": SERVER_TS,
        "src/types.ts": TYPES_TS,
        "src/components/Button.tsx": BUTTON_TSX,
        "README.md": "# Sample\n",
        "node_modules/express/index.js": "app.get('/hidden', handler)\nfunction hidden() {}\n",
    })
    return tmp_path


class KeywordEmbedder:
    """Deterministic embedder: one dimension per keyword, plus a bias."""

    KEYWORDS = ("user", "health", "add", "express")

    def __init__(self):
        self.calls = 0

    def encode(self, texts):
        self.calls += 1
        return np.array([
            [text.lower().count(k) for k in self.KEYWORDS] + [0.01]
            for text in texts
        ], dtype=float)


@pytest.fixture
def embedder():
    return KeywordEmbedder()
