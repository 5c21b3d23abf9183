from mytodos.models.ai_history import AiHistory
from mytodos.models.todo import Todo
from mytodos.models.user import User

__all__ = ["AiHistory", "Todo", "User"]
