# app/db/__init__.py
# 异步引擎 / 会话工厂见 app.db.session；ORM Base 见 app.db.base
