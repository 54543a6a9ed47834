"""
API data models for the quote sharing system.
Pydantic models for request validation and camelCase response rendering.
"""

from typing import Optional, List, Dict, Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """响应字段以 camelCase 输出，同时接受 snake_case 构造"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# === Requests ===

class RegisterRequest(BaseModel):
    """注册请求"""
    name: str = Field(..., min_length=2, max_length=128, description="用户名")
    email: EmailStr = Field(..., description="邮箱")
    password: str = Field(..., min_length=8, max_length=72, description="密码")


class LoginRequest(BaseModel):
    """登录请求"""
    email: EmailStr = Field(..., description="邮箱")
    password: str = Field(..., min_length=1, description="密码")


class RateQuoteRequest(BaseModel):
    """评分请求"""
    model_config = ConfigDict(strict=True)

    rating: int = Field(..., ge=1, le=5, description="评分 1-5")


# === Responses ===

class UserResponse(CamelModel):
    id: str
    name: str
    email: str
    created_at: Optional[str] = None


class AuthResponse(CamelModel):
    token: str
    user: UserResponse


class QuoteResponse(CamelModel):
    """语录响应模型"""
    id: int = Field(..., description="语录ID")
    content: str = Field(..., description="内容")
    author: str = Field(..., description="作者")
    total_likes: int = Field(0, description="点赞数")
    total_ratings: int = Field(0, description="评分数")
    average_rating: float = Field(0.0, description="平均分")
    created_at: Optional[str] = Field(None, description="创建时间")

    # 调用者相关标注
    liked: Optional[bool] = Field(None, description="当前用户是否点赞")
    user_rating: Optional[int] = Field(None, description="当前用户评分，0表示未评分")


class PaginationResponse(CamelModel):
    current_page: int
    total_pages: int
    total_count: int


class PaginatedQuotesResponse(CamelModel):
    """分页语录响应"""
    quotes: List[QuoteResponse]
    pagination: PaginationResponse


class ErrorResponse(BaseModel):
    """错误响应模型"""
    error: str
    error_code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)
