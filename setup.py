from setuptools import setup, find_packages

setup(
    name='FlawlessCSRF',  # 包名
    version='0.1',  # 包的版本
    description='基于会话的CSRF令牌中间件,适用于异步ASGI应用',  # 简短描述
    long_description=open('README.md', encoding='utf-8').read(),  # 长描述,从README文件读取
    long_description_content_type='text/markdown',  # 长描述的内容类型
    author='WEN JIE',  # 作者名
    author_email='799771344@qq.com',  # 作者邮箱
    url='https://github.com/799771344/FlawlessAPI.git',  # 项目主页
    packages=find_packages(exclude=('tests', 'tests.*', 'docs')),  # 项目中要包括的包
    install_requires=[  # 运行时依赖列表
        'starlette>=0.40',
        'python-multipart>=0.0.13',
        'pydantic>=2.0',
        'PyYAML>=6.0',
        'redis>=5.0.1',
    ],
    extras_require={  # 额外的依赖列表
        'dev': ['check-manifest'],
        'test': ['pytest>=7.0', 'pytest-asyncio>=0.21', 'httpx>=0.24', 'coverage'],
    },
    classifiers=[  # 分类器列表
        'Programming Language :: Python :: 3',
        'Framework :: AsyncIO',
    ],
    python_requires='>=3.8',  # 支持的Python版本范围
)
