import uvicorn

from food_search.api import app
from food_search.config import HOST, PORT

if __name__ == "__main__":
    uvicorn.run(app, host=HOST, port=PORT)
