from .connection import get_db, engine, AsyncSessionLocal, init_db, close_db

__all__ = ['get_db', 'engine', 'AsyncSessionLocal', 'init_db', 'close_db']
