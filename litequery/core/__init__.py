"""litequery core: values, results, parameter binding, statements and transactions.

- value.py: Value tagged union and EngineType
- result.py: Field, Row and ResultSet
- parameters.py: placeholder resolution and the Binder
- statement.py: Statement and the use()/use_next()/use_abort() protocol
- cursor.py: Cursor handle that always releases a use() sequence
- transaction.py: Transaction guard
"""

from litequery.core.cursor import Cursor
from litequery.core.parameters import Binder, ParameterInfo, ParameterStyle, ParameterTable, get_parameter_table
from litequery.core.result import Field, ResultSet, Row
from litequery.core.statement import CursorState, Statement
from litequery.core.transaction import Transaction, TransactionMode, TransactionState
from litequery.core.value import EngineType, Value

__all__ = (
    "Binder",
    "Cursor",
    "CursorState",
    "EngineType",
    "Field",
    "ParameterInfo",
    "ParameterStyle",
    "ParameterTable",
    "ResultSet",
    "Row",
    "Statement",
    "Transaction",
    "TransactionMode",
    "TransactionState",
    "Value",
    "get_parameter_table",
)
