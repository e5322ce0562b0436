#!/usr/bin/env python3
"""
Run script for the TalkToPost backend
"""
import uvicorn

from talktopost.config.settings import settings
from talktopost.main import app

if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port, reload=settings.debug)
