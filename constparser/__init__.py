from .cp import (
    BinaryOp,
    CalcConfig,
    Calculator,
    Environment,
    Literal,
    Token,
    TokenCursor,
    UnaryOp,
    VariableRef,
    main,
)
