"""Keyword router that picks the source for a question.

Each route owns a keyword set. A set scores one point per keyword found as a
substring of the lower-cased question. The single best set wins; a tie at the
top becomes `combine`; no hit at all falls back to `documents`.
"""

from __future__ import annotations

from msagent.graph.state import Route

DOCUMENT_HINTS = ("econom", "book", "livro", "smith", "keynes", "marx", "hayek", "piketty")
DATABASE_HINTS = (
    "artista",
    "artistas",
    "faixa",
    "faixas",
    "gênero",
    "genero",
    "álbum",
    "album",
    "álbuns",
    "albuns",
    "faturamento",
    "venda",
    "preço",
    "preços",
    "preco",
    "precos",
    "médio",
    "media",
    "média",
    "valor",
    "custo",
    "music",
    "song",
    "track",
    "artist",
    "playlist",
    "genre",
)
NETWORK_HINTS = ("http", "site", "web", "url", "baixar", "fetch", "curl")

ROUTE_HINTS: dict[Route, tuple[str, ...]] = {
    Route.DOCUMENTS: DOCUMENT_HINTS,
    Route.SQLITE: DATABASE_HINTS,
    Route.BASH: NETWORK_HINTS,
}


def score_routes(question: str) -> dict[Route, int]:
    q = question.lower()
    return {
        route: sum(1 for hint in dict.fromkeys(hints) if hint in q)
        for route, hints in ROUTE_HINTS.items()
    }


def heuristic_route(question: str) -> Route:
    """Return the route for `question`; deterministic and side-effect free."""

    scores = score_routes(question)
    top = max(scores.values())
    if top == 0:
        return Route.DOCUMENTS

    picks = [route for route, score in scores.items() if score == top]
    if len(picks) > 1:
        return Route.COMBINE
    return picks[0]
