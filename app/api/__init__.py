# app/api/__init__.py
"""
HTTP 层：依赖装配（deps）、Problem 错误形状（problem）、路由（routers/）。
这里不做重导出，app.main 直接引用各路由模块。
"""
