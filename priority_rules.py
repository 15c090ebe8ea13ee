# Centralised operator precedence for the expression parser
PRIORITY = {
    '^': 4,
    'unary': 3,
    '*': 2, '/': 2,
    '+': 1, '-': 1,
}

# '^' binds right-to-left: 2^3^2 == 2^(3^2)
RIGHT_ASSOCIATIVE = frozenset({'^'})

BINARY_OPERATORS = frozenset({'+', '-', '*', '/', '^'})


def precedence_of(token: str) -> int:
    return PRIORITY.get(token, 0)


def is_right_associative(token: str) -> bool:
    return token in RIGHT_ASSOCIATIVE
