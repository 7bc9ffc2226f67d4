"""
External generation collaborators.
"""

from .articles import generate_article, ArticleContext, GeneratedArticle, build_article_generator

__all__ = ['generate_article', 'ArticleContext', 'GeneratedArticle', 'build_article_generator']
