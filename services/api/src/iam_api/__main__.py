"""`python -m iam_api` 启动入口。"""

from iam_api.main import run

if __name__ == "__main__":
    run()
