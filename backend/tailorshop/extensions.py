# Overview: Flask extension instances for the database.

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
