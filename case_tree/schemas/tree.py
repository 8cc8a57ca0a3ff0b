"""
Pydantic schemas for tree responses.
"""

from datetime import datetime

from pydantic import BaseModel


class TreeNode(BaseModel):
    """递归树节点 schema：文件夹带 path/level 与子节点，测试用例为叶子"""
    id: str
    name: str
    is_folder: bool
    parent_id: str | None = None
    path: str | None = None
    level: int | None = None
    sort_order: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    children: list["TreeNode"] = []


TreeNode.model_rebuild()
