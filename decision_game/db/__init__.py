from .memory import InMemoryScoreRepository
from .repositories import DBScoreRepository
from .session import create_session, database_url, get_engine
