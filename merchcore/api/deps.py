# merchcore/api/deps.py
from fastapi import Depends, Request
from merchcore.db.mongo import get_db
from merchcore.domain.repositories.cache_repo import ResultCache
from merchcore.domain.repositories.cart_repo import CartRepo
from merchcore.domain.repositories.interaction_repo import InteractionRepo
from merchcore.domain.repositories.product_repo import ProductRepo
from merchcore.domain.repositories.profile_repo import ProfileRepo
from merchcore.workers.dispatcher import TaskDispatcher

# Dependency for injecting the MongoDB database into repositories
async def mongo_db(db = Depends(get_db)):
    return db

# Store adapters (overridden with in-memory doubles in tests)
def products_repo(db = Depends(mongo_db)) -> ProductRepo:
    return ProductRepo(db)

def interactions_repo(db = Depends(mongo_db)) -> InteractionRepo:
    return InteractionRepo(db)

def profiles_repo(db = Depends(mongo_db)) -> ProfileRepo:
    return ProfileRepo(db)

def carts_repo(db = Depends(mongo_db)) -> CartRepo:
    return CartRepo(db)

# App-scoped services created in the lifespan
def cache_dep(request: Request) -> ResultCache:
    return request.app.state.cache

def dispatcher_dep(request: Request) -> TaskDispatcher:
    return request.app.state.dispatcher
