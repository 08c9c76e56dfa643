# brokerdesk/database/base.py

from sqlalchemy.orm import declarative_base

# Declarative base shared by every model in brokerdesk.database.models
Base = declarative_base()
