import uvicorn

from flat_file_server.config import ServerConfig
from flat_file_server.logger_config import setup_logger
from flat_file_server.main import create_app


def main(argv=None):
    config, host, port = ServerConfig.from_args(argv)
    logger = setup_logger(config.log_dir)

    logger.info("Starting Flat File Server...")
    logger.info(f"Files directory: {config.files_root}")
    logger.info(f"Public directory: {config.public_root}")
    logger.info(f"Maximum file size: {config.max_file_size} bytes")
    uvicorn.run(create_app(config), host=host, port=port)


if __name__ == "__main__":
    main()
