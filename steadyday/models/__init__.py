from .task import Task, Category
